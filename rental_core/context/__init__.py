from .operation_context import OperationContext, OperationHandler, operation
from .service_context import ServiceContext

__all__ = ["OperationContext", "OperationHandler", "operation", "ServiceContext"]
