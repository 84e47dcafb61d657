from typing import Optional

class BaseCustomError(Exception):
    """Base exception class for custom errors"""
    def __init__(self, message: str, error_code: Optional[str] = None):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)

class DatabaseError(BaseCustomError):
    """Raised when database operations fail"""
    def __init__(self, message: str):
        super().__init__(message, "DATABASE_ERROR")

class NotFoundError(BaseCustomError):
    """Raised when a referenced record does not exist"""
    def __init__(self, message: str, error_code: str = "NOT_FOUND"):
        super().__init__(message, error_code)

class CompanyNotFoundError(NotFoundError):
    def __init__(self, message: str):
        super().__init__(message, "COMPANY_NOT_FOUND")

class UserNotFoundError(NotFoundError):
    def __init__(self, message: str):
        super().__init__(message, "USER_NOT_FOUND")

class ExpenseNotFoundError(NotFoundError):
    def __init__(self, message: str):
        super().__init__(message, "EXPENSE_NOT_FOUND")

class AlreadyExistsError(BaseCustomError):
    """Raised when a unique record is created twice"""
    def __init__(self, message: str, error_code: str = "ALREADY_EXISTS"):
        super().__init__(message, error_code)

class CompanyAlreadyExistsError(AlreadyExistsError):
    def __init__(self, message: str):
        super().__init__(message, "COMPANY_ALREADY_EXISTS")

class UserAlreadyExistsError(AlreadyExistsError):
    def __init__(self, message: str):
        super().__init__(message, "USER_ALREADY_EXISTS")

class ConfigurationError(BaseCustomError):
    """Raised when a company's approval flow is incomplete or inconsistent"""
    def __init__(self, message: str):
        super().__init__(message, "CONFIGURATION_ERROR")

class ValidationError(BaseCustomError):
    """Raised when validation fails"""
    def __init__(self, message: str):
        super().__init__(message, "VALIDATION_ERROR")

class AuthorizationError(BaseCustomError):
    """Raised when authorization fails"""
    def __init__(self, message: str):
        super().__init__(message, "AUTHORIZATION_ERROR")
