class ReplenishmentError(Exception):
    """Base exception for Demand Replenishment System errors."""
    
    default_message = "An error occurred in the Demand Replenishment System"
    default_code = None
    
    def __init__(self, message=None, code=None, details=None):
        """Initialize the exception.
        
        Args:
            message: Error message
            code: Error code
            details: Additional error details
        """
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)
    
    def __str__(self):
        """String representation of the error."""
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message
    
    def to_dict(self):
        """Convert the exception to a dictionary."""
        error_dict = {
            'error': self.__class__.__name__,
            'message': self.message,
        }
        
        if self.code:
            error_dict['code'] = self.code
            
        if self.details:
            error_dict['details'] = self.details
            
        return error_dict


class ConfigError(ReplenishmentError):
    """Exception raised for configuration errors."""
    
    default_message = "Configuration error"


class DatabaseError(ReplenishmentError):
    """Exception raised for database-related errors."""
    
    default_message = "Database error"


class ValidationError(ReplenishmentError):
    """Exception raised for data validation errors."""
    
    default_message = "Validation error"


class InsufficientDataError(ValidationError):
    """Raised when a series is shorter than an algorithm or operation requires.
    
    Recoverable by requesting fewer points or collecting more history.
    """
    
    default_message = "Insufficient historical data"
    default_code = "INSUFFICIENT_DATA"
    
    def __init__(self, message=None, required=None, available=None, algorithm=None, details=None):
        details = dict(details or {})
        if required is not None:
            details['required'] = required
        if available is not None:
            details['available'] = available
        if algorithm is not None:
            details['algorithm'] = algorithm
        super().__init__(message, details=details)
        self.required = required
        self.available = available
        self.algorithm = algorithm


class InvalidValueError(ValidationError):
    """Raised when a demand value is negative or missing."""
    
    default_message = "Invalid demand value"
    default_code = "INVALID_VALUE"
    
    def __init__(self, message=None, index=None, value=None, details=None):
        details = dict(details or {})
        details['index'] = index
        details['value'] = value
        super().__init__(message, details=details)
        self.index = index
        self.value = value


class InvalidParameterError(ValidationError):
    """Raised for an algorithm or operation parameter that cannot be clamped."""
    
    default_message = "Invalid parameter"
    default_code = "INVALID_PARAMETER"
    
    def __init__(self, message=None, parameter=None, value=None, details=None):
        details = dict(details or {})
        if parameter is not None:
            details['parameter'] = parameter
            details['value'] = value
        super().__init__(message, details=details)
        self.parameter = parameter
        self.value = value


class ProductNotFoundError(ReplenishmentError):
    """Raised when a product reference cannot be resolved."""
    
    default_message = "Product not found"
    default_code = "PRODUCT_NOT_FOUND"
    
    def __init__(self, product_id=None, message=None):
        message = message or f"Product with ID {product_id} not found"
        super().__init__(message, details={'product_id': product_id})
        self.product_id = product_id


class ComputationError(ReplenishmentError):
    """Raised when a numeric computation produces an unusable result."""
    
    default_message = "Computation error"
    default_code = "COMPUTATION_ERROR"
    
    def __init__(self, message=None, product_id=None, algorithm=None, details=None):
        details = dict(details or {})
        details['product_id'] = product_id
        details['algorithm'] = algorithm
        super().__init__(message, details=details)
        self.product_id = product_id
        self.algorithm = algorithm
    
    def __str__(self):
        base = super().__str__()
        return f"{base} (product={self.product_id}, algorithm={self.algorithm})"


class BatchProcessError(ReplenishmentError):
    """Exception raised for batch process errors."""
    
    default_message = "Batch process error"
