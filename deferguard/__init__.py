"""deferguard — scope-exit guards for exception-safe cleanup.

Register cleanup that runs when a ``with`` block ends, always, only on
failure, or only on success::

    from deferguard import defer_on_failure

    with defer_on_failure(tx.rollback):
        tx.apply(changes)
"""

from .builder import Binder, bind, defer, defer_on_failure, defer_on_success, make_guard
from .config import Config, configure, get_config, load_config, set_config
from .errors import GuardError, GuardMisuseError, GuardStateError, UnwindActionError
from .guard import ScopeGuard
from .policy import GuardState, Policy
from .stack import GuardStack
from .unwind import is_unwinding_due_to_error

__all__ = [
  "Binder",
  "bind",
  "defer",
  "defer_on_failure",
  "defer_on_success",
  "make_guard",
  "Config",
  "configure",
  "get_config",
  "load_config",
  "set_config",
  "GuardError",
  "GuardMisuseError",
  "GuardStateError",
  "UnwindActionError",
  "ScopeGuard",
  "GuardState",
  "Policy",
  "GuardStack",
  "is_unwinding_due_to_error",
]
