"""Base controller logging mixin.

Provides the LoggingMixin used by every controller for structured,
correlated logging, and the mapping from a caught backend error to the
message shown to the user.

Usage:
    from equiduty.application.services.base import LoggingMixin

    class MyController(LoggingMixin):
        def __init__(self, api: SelectionProcessApiProtocol) -> None:
            self._api = api
            self._init_logger()

        async def do_something(self) -> None:
            log = self._log_operation("do_something", process_id="p-1")
            log.info("operation_started")
"""

import structlog

from equiduty.domain.errors.api import BadRequestError
from equiduty.domain.errors.selection_process import SelectionProcessError
from equiduty.infrastructure.observability.correlation import get_correlation_id


class LoggingMixin:
    """Mixin providing structured logging for controllers.

    The logger is bound with:
    - service: The class name of the controller
    - component: The component type (default: "selection_process")

    Each operation gets:
    - operation: The name of the operation being performed
    - correlation_id: From context for request tracing
    - Any additional context passed to _log_operation()

    Attributes:
        _log: The structlog BoundLogger for this instance.
    """

    _log: structlog.BoundLogger

    def _init_logger(self, component: str = "selection_process") -> None:
        """Initialize the logger with service name binding.

        Should be called in __init__ after setting up dependencies.

        Args:
            component: The component type for log categorization.
        """
        self._log = structlog.get_logger().bind(
            service=self.__class__.__name__,
            component=component,
        )

    def _log_operation(
        self,
        operation: str,
        **context: object,
    ) -> structlog.BoundLogger:
        """Create operation-scoped logger with correlation ID.

        Args:
            operation: Name of the operation being performed.
            **context: Additional context to bind to the logger.

        Returns:
            BoundLogger with operation and correlation context.
        """
        return self._log.bind(
            operation=operation,
            correlation_id=get_correlation_id(),
            **context,
        )


def user_facing_message(error: BaseException, fallback: str) -> str:
    """Pick the message to show for a failed backend call.

    Backend validation refusals (400) and domain rule violations carry
    messages written for the user; everything else gets ``fallback``.
    """
    if isinstance(error, (BadRequestError, SelectionProcessError)) and str(error):
        return str(error)
    return fallback
