"""Filter engine deciding which discovered test cases run."""

from collections.abc import Iterable, Mapping, Sequence

from assembly_runner.models.project import Filters, TraitFilterSet
from assembly_runner.models.test_case import TestCase


def matches(test_case: TestCase, filters: Filters) -> bool:
    """Whether a test case passes every filter dimension.

    Class and method constraints are OR-combined with each other, the test
    name constraint is independent, then trait inclusion and exclusion apply.
    Name checks run before trait checks.
    """
    return (
        _matches_classes_and_methods(test_case, filters)
        and _matches_names(test_case, filters)
        and _matches_included_traits(test_case, filters.included_traits)
        and not _matches_any_trait(test_case.traits, filters.excluded_traits)
    )


def filter_test_cases(
    test_cases: Iterable[TestCase], filters: Filters
) -> Sequence[TestCase]:
    """Keep only the test cases matching ``filters``, preserving order."""
    if filters.is_empty:
        return list(test_cases)
    return [test_case for test_case in test_cases if matches(test_case, filters)]


def _matches_classes_and_methods(test_case: TestCase, filters: Filters) -> bool:
    if not filters.included_classes and not filters.included_methods:
        return True
    return (
        test_case.class_name in filters.included_classes
        or test_case.qualified_method_name in filters.included_methods
    )


def _matches_names(test_case: TestCase, filters: Filters) -> bool:
    if not filters.included_names:
        return True
    return test_case.display_name in filters.included_names


def _matches_included_traits(
    test_case: TestCase, included_traits: TraitFilterSet
) -> bool:
    if not included_traits:
        return True
    return _matches_any_trait(test_case.traits, included_traits)


def _matches_any_trait(
    traits: Mapping[str, Sequence[str]], trait_filters: TraitFilterSet
) -> bool:
    """Whether any name/value pair of ``traits`` appears in ``trait_filters``.

    Trait names and values compare case-insensitively.
    """
    if not trait_filters or not traits:
        return False

    wanted: dict[str, set[str]] = {}
    for name, values in trait_filters.items():
        wanted.setdefault(name.casefold(), set()).update(v.casefold() for v in values)

    for name, values in traits.items():
        accepted = wanted.get(name.casefold())
        if accepted and any(value.casefold() in accepted for value in values):
            return True
    return False
