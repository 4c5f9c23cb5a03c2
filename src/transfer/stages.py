"""
Stage tracking shared by the transfer pipelines.

Each pipeline runs its steps inside stage() blocks. A KtCloudError escaping
a block is tagged with the stage name and the identifier being
transferred, a FAILED event is emitted, and the error is re-raised.
OSError from local streams becomes LocalIOError.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from ..errors import KtCloudError, LocalIOError
from ..integration.event_logger import EventLogger, EventType, emit


# Download states
LOOKUP = "lookup"
AUTH_CHECK = "auth_check"
URL_RESOLVE = "url_resolve"
FETCH = "fetch"
DELIVER = "deliver"

# Upload states
POLICY = "policy"
READ = "read"
ENCRYPT = "encrypt"
REGISTER = "register"
TRANSMIT = "transmit"
COMMIT = "commit"


@contextmanager
def stage(name: str, identifier: str,
          events: Optional[EventLogger] = None) -> Iterator[None]:
    """
    Run one pipeline stage.

    Args:
        name: Stage name used to tag errors
        identifier: File id or name being transferred
        events: Optional observer notified on failure
    """
    try:
        yield
    except KtCloudError as exc:
        # Nested stages: the innermost one tags and reports
        if exc.stage is None:
            exc.stage = name
            exc.identifier = identifier
            emit(events, EventType.FAILED, str(exc),
                 stage=name, error=type(exc).__name__)
        raise
    except OSError as exc:
        error = LocalIOError(str(exc) or type(exc).__name__,
                             stage=name, identifier=identifier)
        emit(events, EventType.FAILED, str(error),
             stage=name, error=type(error).__name__)
        raise error from exc
