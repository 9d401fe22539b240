import logging
import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

logger = logging.getLogger(__name__)

_current_span: ContextVar[Optional['TraceSpan']] = ContextVar(
    'liferpg_trace_span', default=None
)


@dataclass
class TraceSpan:
    '''A timed section of work, logged when it closes.'''

    name: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    parent: Optional['TraceSpan'] = None
    started: float = field(default_factory=time.perf_counter)
    ended: Optional[float] = None

    @property
    def duration_ms(self) -> Optional[float]:
        if self.ended is None:
            return None
        return (self.ended - self.started) * 1000

    @property
    def path(self) -> str:
        return f'{self.parent.path} > {self.name}' if self.parent else self.name

    def close(self, failed: bool = False) -> None:
        self.ended = time.perf_counter()
        details = ', '.join(f'{k}={v}' for k, v in self.metadata.items())
        status = ' FAILED' if failed else ''
        logger.debug(f'{self.path}: {self.duration_ms:.2f}ms{status} [{details}]')


@contextmanager
def trace_span(
    name: str, metadata: Optional[Dict[str, Any]] = None
) -> Iterator[TraceSpan]:
    '''Time a block of work and nest it under the enclosing span, if any.

    Example:
        with trace_span('game.log_activity', {'user_id': user_id}) as span:
            outcome = apply_activity(...)
            span.metadata['level'] = outcome.state.level
    '''
    span = TraceSpan(name=name, metadata=dict(metadata or {}), parent=_current_span.get())
    token = _current_span.set(span)
    failed = False
    try:
        yield span
    except Exception:
        failed = True
        raise
    finally:
        span.close(failed=failed)
        _current_span.reset(token)


def add_span_metadata(key: str, value: Any) -> None:
    '''Attach metadata to the innermost open span.'''
    current = _current_span.get()
    if current is not None:
        current.metadata[key] = value
