"""Decorators attaching runner metadata to test functions and classes."""

from collections.abc import Callable, Mapping, Sequence

TRAITS_ATTR = "__assembly_runner_traits__"
SKIP_ATTR = "__assembly_runner_skip__"


def trait[T](name: str, value: str) -> Callable[[T], T]:
    """Tag a test function or class with a ``name=value`` trait.

    Traits on a class apply to every test method of the class.
    """

    def decorator(target: T) -> T:
        # Copy so a subclass never mutates traits inherited from its base
        traits = {key: list(values) for key, values in get_traits(target).items()}
        traits.setdefault(name, []).append(value)
        setattr(target, TRAITS_ATTR, traits)
        return target

    return decorator


def skip[T](reason: str) -> Callable[[T], T]:
    """Mark a test function or class as skipped."""

    def decorator(target: T) -> T:
        setattr(target, SKIP_ATTR, reason)
        return target

    return decorator


def get_traits(target: object) -> Mapping[str, Sequence[str]]:
    return getattr(target, TRAITS_ATTR, {})


def get_skip_reason(target: object) -> str | None:
    return getattr(target, SKIP_ATTR, None)
