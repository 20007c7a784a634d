"""Explicit outcomes for per-object resolution steps.

Mesh and texture lookups for one scene object must not abort a scene load.
Each attempt yields a Resolved holding either a value or the error that
stopped it; callers collapse failures to "absent" at the scene boundary.

Texture decoders are supplied by the caller and may raise anything, so the
boundary catches every Exception, not just the decode-error family.
"""


class Resolved:
    """Outcome of one resolution attempt."""

    __slots__ = ('value', 'error')

    def __init__(self, value=None, error=None):
        self.value = value
        self.error = error

    @property
    def ok(self):
        return self.error is None and self.value is not None

    @classmethod
    def attempt(cls, func, *args, **kwargs):
        """Call func, capturing any error instead of raising it."""
        try:
            return cls(value=func(*args, **kwargs))
        except Exception as exc:
            return cls(error=exc)

    def __repr__(self):
        if self.error is not None:
            return f"Resolved(error={self.error!r})"
        return f"Resolved({self.value!r})"
