"""Attribute metadata registry.

An attribute is one dimension of the similarity profile: it names a record
column, belongs to exactly one attribute group, has a bounded integer
similarity range and a comparator that scores two column values.
"""

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass

from simratio.errors import ErrorKind, RatiosError

__all__ = ["Comparator", "AttributeSpec", "AttributeRegistry"]

# Scores two column values; None means the pair cannot be scored.
Comparator = Callable[[str | None, str | None], int | None]


@dataclass(frozen=True, slots=True)
class AttributeSpec:
    """Configuration for one attribute dimension.

    Attributes
    ----------
    name : str
        Attribute name, equal to the record column it compares.
    group : str
        Attribute group the dimension belongs to.
    max_similarity : int
        Largest similarity the comparator can return.
    comparator : Comparator
        Scoring function for two column values.
    min_similarity : int
        Smallest similarity the comparator can return.
    """

    name: str
    group: str
    max_similarity: int
    comparator: Comparator
    min_similarity: int = 0

    def __post_init__(self) -> None:
        """Validate similarity bounds."""
        if self.min_similarity < 0:
            raise ValueError(f"{self.name}: min_similarity must be >= 0")
        if self.max_similarity < self.min_similarity:
            raise ValueError(
                f"{self.name}: max_similarity ({self.max_similarity}) "
                f"< min_similarity ({self.min_similarity})"
            )

    def compare(self, value_a: str | None, value_b: str | None) -> int | None:
        """Run the comparator."""
        return self.comparator(value_a, value_b)


class AttributeRegistry:
    """Ordered set of attribute specs.

    Registry order is the layout of the full similarity profile: the
    attribute at registry position ``i`` is dimension ``i`` of every joint
    table built from this registry.
    """

    def __init__(self, specs: Iterable[AttributeSpec]) -> None:
        """Initialize registry.

        Parameters
        ----------
        specs : Iterable[AttributeSpec]
            Attribute specs in full-profile order.

        Raises
        ------
        ValueError
            If names repeat or the registry is empty.
        """
        self._specs: tuple[AttributeSpec, ...] = tuple(specs)
        if not self._specs:
            raise ValueError("Attribute registry is empty")

        self._by_name: dict[str, AttributeSpec] = {}
        for spec in self._specs:
            if spec.name in self._by_name:
                raise ValueError(f"Duplicate attribute: {spec.name}")
            self._by_name[spec.name] = spec

    def __len__(self) -> int:
        return len(self._specs)

    def __iter__(self) -> Iterator[AttributeSpec]:
        return iter(self._specs)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    @property
    def names(self) -> list[str]:
        """Attribute names in full-profile order."""
        return [spec.name for spec in self._specs]

    def get(self, name: str) -> AttributeSpec:
        """Look up an attribute.

        Raises
        ------
        RatiosError
            MALFORMED_CONFIGURATION if the attribute is unknown.
        """
        spec = self._by_name.get(name)
        if spec is None:
            raise RatiosError(ErrorKind.MALFORMED_CONFIGURATION, f"Unknown attribute: {name}")
        return spec

    def position(self, name: str) -> int:
        """Dimension of an attribute within the full profile."""
        self.get(name)
        return self.names.index(name)

    def group_names(self) -> list[str]:
        """Group names in order of first appearance."""
        return list(dict.fromkeys(spec.group for spec in self._specs))

    def group(self, group: str) -> list[AttributeSpec]:
        """Attributes of one group, in full-profile order.

        Raises
        ------
        RatiosError
            MALFORMED_CONFIGURATION if no attribute belongs to the group.
        """
        specs = [spec for spec in self._specs if spec.group == group]
        if not specs:
            raise RatiosError(
                ErrorKind.MALFORMED_CONFIGURATION, f"No attributes in group: {group}"
            )
        return specs
