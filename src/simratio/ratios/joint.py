"""Joint ratio table over the complete similarity profile.

The joint table is built by merging every group's ``RatioComponent`` under
group independence: a joint profile is the concatenation of one
sub-profile per group, placed at the group's positions, and its ratio is
the product of the component ratios. The table can be smoothed over the
full lattice, persisted to a delimited text file and read back by the
clustering stage.

File layout (defaults ``,`` and ``|``)::

    firstname,middlename,lastname|location,assignee,coauthors,classes|ratio
    0,0,0|0,0,0,0|0.0123
"""

import itertools
import math
import os
from collections.abc import Mapping, Sequence
from pathlib import Path
from types import MappingProxyType

from simratio.attributes import DEFAULT_REGISTRY, AttributeRegistry
from simratio.audit.logger import AuditLogger
from simratio.config import RatiosConfig
from simratio.errors import ErrorKind, RatiosError
from simratio.models.profiles import (
    SimilarityProfile,
    format_profile,
    get_max_similarity,
    get_min_similarity,
    parse_profile,
)
from simratio.models.records import Record
from simratio.ratios.component import RatioComponent
from simratio.smoothing.engine import SmoothingResult, smooth_ratios
from simratio.smoothing.qp import QPSolver
from simratio.utils import read_text_utf8

__all__ = ["Ratios", "RATIO_FIELD"]

RATIO_FIELD = "ratio"


def _group_layout(attrib_names: Sequence[str], registry: AttributeRegistry) -> dict[str, list[str]]:
    """Split profile attributes into contiguous groups, in profile order."""
    groups: dict[str, list[str]] = {}
    previous: str | None = None
    for name in attrib_names:
        group = registry.get(name).group
        if group != previous and group in groups:
            raise RatiosError(
                ErrorKind.MALFORMED_CONFIGURATION,
                f"Attribute group '{group}' is not contiguous in the profile",
            )
        groups.setdefault(group, []).append(name)
        previous = group
    return groups


def _validate_positions(
    components: Sequence[RatioComponent],
    record: Record,
    n_attributes: int,
) -> None:
    seen_ratio: dict[int, str] = {}
    seen_record: dict[int, str] = {}

    for comp in components:
        names = comp.get_attrib_names()
        ratio_positions = comp.get_component_positions_in_ratios()
        record_positions = comp.get_component_positions_in_record()
        if not len(names) == len(ratio_positions) == len(record_positions):
            raise RatiosError(
                ErrorKind.MALFORMED_CONFIGURATION,
                f"Group {comp.group}: attribute and position counts differ",
            )

        for name, pos in zip(names, ratio_positions, strict=True):
            if not 0 <= pos < n_attributes:
                raise RatiosError(
                    ErrorKind.MALFORMED_CONFIGURATION,
                    f"Group {comp.group}: profile position {pos} of '{name}' "
                    f"outside 0..{n_attributes - 1}",
                )
            if pos in seen_ratio:
                raise RatiosError(
                    ErrorKind.MALFORMED_CONFIGURATION,
                    f"Profile position {pos} claimed by '{seen_ratio[pos]}' and '{name}'",
                )
            seen_ratio[pos] = name

        for name, pos in zip(names, record_positions, strict=True):
            if not 0 <= pos < len(record.column_names) or record.column_names[pos] != name:
                raise RatiosError(
                    ErrorKind.MALFORMED_CONFIGURATION,
                    f"Group {comp.group}: record position {pos} does not hold '{name}'",
                )
            if pos in seen_record:
                raise RatiosError(
                    ErrorKind.MALFORMED_CONFIGURATION,
                    f"Record position {pos} claimed by '{seen_record[pos]}' and '{name}'",
                )
            seen_record[pos] = name

    missing = sorted(set(range(n_attributes)) - set(seen_ratio))
    if missing:
        raise RatiosError(
            ErrorKind.MALFORMED_CONFIGURATION,
            f"Profile positions {missing} not covered by any component",
        )


class Ratios:
    """Joint similarity-profile ratio table.

    Attributes
    ----------
    attrib_names : list[str]
        Profile attributes in dimension order.
    groups : dict[str, list[str]]
        Group name to attribute names, in profile order.
    x_counts : dict[SimilarityProfile, int]
        Non-match support per joint profile (empty when read from file).
    m_counts : dict[SimilarityProfile, int]
        Match support per joint profile (empty when read from file).
    path : Path | None
        Default location for ``write_ratios_file``.
    smoothing : SmoothingResult | None
        Result of the last ``smooth`` call.
    """

    def __init__(
        self,
        attrib_names: Sequence[str] = (),
        final_ratios: Mapping[SimilarityProfile, float] | None = None,
        groups: Mapping[str, Sequence[str]] | None = None,
        x_counts: Mapping[SimilarityProfile, int] | None = None,
        m_counts: Mapping[SimilarityProfile, int] | None = None,
        path: Path | str | None = None,
        registry: AttributeRegistry | None = None,
        config: RatiosConfig | None = None,
        logger: AuditLogger | None = None,
    ) -> None:
        self.registry = registry if registry is not None else DEFAULT_REGISTRY
        self.config = config if config is not None else RatiosConfig()
        self.logger = logger
        self.attrib_names = list(attrib_names)
        if groups is None:
            groups = _group_layout(self.attrib_names, self.registry) if self.attrib_names else {}
        self.groups = {name: list(members) for name, members in groups.items()}
        self.final_ratios: dict[SimilarityProfile, float] = dict(final_ratios or {})
        self.x_counts: dict[SimilarityProfile, int] = dict(x_counts or {})
        self.m_counts: dict[SimilarityProfile, int] = dict(m_counts or {})
        self.path = Path(path) if path is not None else None
        self.smoothing: SmoothingResult | None = None

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_components(
        cls,
        components: Sequence[RatioComponent],
        record: Record,
        path: Path | str | None = None,
        registry: AttributeRegistry | None = None,
        config: RatiosConfig | None = None,
        logger: AuditLogger | None = None,
    ) -> "Ratios":
        """Merge ready components into a joint table.

        Parameters
        ----------
        components : Sequence[RatioComponent]
            One ready component per attribute group.
        record : Record
            Representative record, used to check record positions.
        path : Path | str | None, optional
            Default ratio file location.
        registry : AttributeRegistry | None, optional
            Attribute metadata, by default the inventor registry.
        config : RatiosConfig | None, optional
            Delimiters and smoothing settings.
        logger : AuditLogger | None, optional
            Audit logger for events, by default None.

        Returns
        -------
        Ratios
            Joint table with one entry per combination of component profiles.

        Raises
        ------
        RatiosError
            MALFORMED_CONFIGURATION on overlapping, missing or mislabelled
            positions; NOT_READY if a component has no ratios yet.
        """
        registry = registry if registry is not None else DEFAULT_REGISTRY
        if not components:
            raise RatiosError(ErrorKind.MALFORMED_CONFIGURATION, "No ratio components to merge")

        _validate_positions(components, record, len(registry))
        maps = [comp.get_ratios_map() for comp in components]

        ratios = cls(
            attrib_names=registry.names,
            path=path,
            registry=registry,
            config=config,
            logger=logger,
        )
        ratios._merge(components, maps)

        if logger:
            logger.event(
                "ratios_merged",
                data={
                    "components": [comp.group for comp in components],
                    "entries": len(ratios.final_ratios),
                },
            )
        return ratios

    def _merge(
        self,
        components: Sequence[RatioComponent],
        maps: Sequence[Mapping[SimilarityProfile, float]],
    ) -> None:
        n = len(self.attrib_names)
        positions = [comp.get_component_positions_in_ratios() for comp in components]
        x_counts = [comp.get_x_counts() for comp in components]
        m_counts = [comp.get_m_counts() for comp in components]

        for combo in itertools.product(*(sorted(m.items()) for m in maps)):
            key = [0] * n
            ratio = 1.0
            for comp_positions, (sub_profile, sub_ratio) in zip(positions, combo, strict=True):
                for pos, value in zip(comp_positions, sub_profile, strict=True):
                    key[pos] = value
                ratio *= sub_ratio
            profile = tuple(key)
            self.final_ratios[profile] = ratio

            subs = [sub_profile for sub_profile, _ in combo]
            x_support = min(counts.get(sub, 0) for counts, sub in zip(x_counts, subs, strict=True))
            m_support = min(counts.get(sub, 0) for counts, sub in zip(m_counts, subs, strict=True))
            if x_support:
                self.x_counts[profile] = x_support
            if m_support:
                self.m_counts[profile] = m_support

    @classmethod
    def from_file(
        cls,
        path: Path | str,
        registry: AttributeRegistry | None = None,
        config: RatiosConfig | None = None,
        logger: AuditLogger | None = None,
    ) -> "Ratios":
        """Load a persisted ratio table."""
        ratios = cls(path=path, registry=registry, config=config, logger=logger)
        ratios.read_ratios_file(path)
        return ratios

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _group_name(self, members: Sequence[str], index: int) -> str:
        if members and members[0] in self.registry:
            return self.registry.get(members[0]).group
        return f"group_{index}"

    def read_ratios_file(self, path: Path | str) -> None:
        """Replace the table with the contents of a ratio file.

        Raises
        ------
        RatiosError
            IO_FAILURE if the file is missing, unreadable or malformed; the
            message names the path and line.
        """
        path = Path(path)
        primary = self.config.primary_delim
        secondary = self.config.secondary_delim

        lines = read_text_utf8(path, "ratio file").splitlines()

        if not lines:
            raise RatiosError(ErrorKind.IO_FAILURE, f"{path}:1: empty ratio file")

        header = lines[0].split(secondary)
        if len(header) < 2 or header[-1].strip() != RATIO_FIELD:
            raise RatiosError(ErrorKind.IO_FAILURE, f"{path}:1: malformed header {lines[0]!r}")
        layout = [[name.strip() for name in field.split(primary)] for field in header[:-1]]
        if any(not name for members in layout for name in members):
            raise RatiosError(ErrorKind.IO_FAILURE, f"{path}:1: empty attribute name in header")

        final_ratios: dict[SimilarityProfile, float] = {}
        for line_num, line in enumerate(lines[1:], 2):
            if not line.strip():
                continue
            fields = line.split(secondary)
            if len(fields) != len(layout) + 1:
                raise RatiosError(
                    ErrorKind.IO_FAILURE,
                    f"{path}:{line_num}: expected {len(layout) + 1} fields, got {len(fields)}",
                )
            try:
                profile: SimilarityProfile = ()
                for members, field in zip(layout, fields[:-1], strict=True):
                    part = parse_profile(field, primary)
                    if len(part) != len(members):
                        raise ValueError(f"expected {len(members)} values in {field!r}")
                    profile += part
                ratio = float(fields[-1])
            except ValueError as e:
                raise RatiosError(ErrorKind.IO_FAILURE, f"{path}:{line_num}: {e}") from e

            if not math.isfinite(ratio) or ratio <= 0:
                raise RatiosError(
                    ErrorKind.IO_FAILURE, f"{path}:{line_num}: ratio must be positive, got {ratio}"
                )
            if profile in final_ratios:
                raise RatiosError(
                    ErrorKind.IO_FAILURE, f"{path}:{line_num}: duplicate profile {profile}"
                )
            final_ratios[profile] = ratio

        self.attrib_names = [name for members in layout for name in members]
        self.groups = {
            self._group_name(members, i): members for i, members in enumerate(layout)
        }
        self.final_ratios = final_ratios
        self.x_counts = {}
        self.m_counts = {}
        self.smoothing = None
        self.path = path

        if self.logger:
            self.logger.event(
                "ratios_loaded", data={"path": str(path), "entries": len(final_ratios)}
            )

    def _format_line(self, profile: SimilarityProfile, ratio: float) -> str:
        fields: list[str] = []
        offset = 0
        for members in self.groups.values():
            part = profile[offset : offset + len(members)]
            fields.append(format_profile(part, self.config.primary_delim))
            offset += len(members)
        fields.append(repr(float(ratio)))
        return self.config.secondary_delim.join(fields)

    def write_ratios_file(self, path: Path | str | None = None) -> Path:
        """Persist the table atomically.

        Parameters
        ----------
        path : Path | str | None, optional
            Target file, by default ``self.path``.

        Returns
        -------
        Path
            Written file.

        Raises
        ------
        ValueError
            If neither ``path`` nor ``self.path`` is set.
        RatiosError
            IO_FAILURE if the file cannot be written.
        """
        target = Path(path) if path is not None else self.path
        if target is None:
            raise ValueError("No ratio file path given")

        header = self.config.secondary_delim.join(
            [self.config.primary_delim.join(members) for members in self.groups.values()]
            + [RATIO_FIELD]
        )
        lines = [header]
        lines.extend(
            self._format_line(profile, self.final_ratios[profile])
            for profile in sorted(self.final_ratios)
        )

        temp_path = target.with_name(target.name + ".tmp")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f:
                f.write("\n".join(lines) + "\n")
            os.replace(temp_path, target)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise RatiosError(ErrorKind.IO_FAILURE, f"Cannot write ratio file {target}: {e}") from e

        return target

    # ------------------------------------------------------------------
    # Smoothing and access
    # ------------------------------------------------------------------

    def smooth(self, solver: QPSolver | None = None) -> SmoothingResult:
        """Smooth the joint table over the full lattice.

        Over ``config.max_lattice_nodes`` the table is left unchanged and the
        result carries LATTICE_TOO_LARGE status.
        """
        result = smooth_ratios(
            self.final_ratios,
            self.x_counts,
            self.m_counts,
            get_min_similarity(self.attrib_names, self.registry),
            get_max_similarity(self.attrib_names, self.registry),
            self.config,
            solver=solver,
            logger=self.logger,
            table="joint",
        )
        self.final_ratios = dict(result.ratios)
        self.smoothing = result
        return result

    def get_ratios_map(self) -> Mapping[SimilarityProfile, float]:
        """Read-only profile to ratio map."""
        return MappingProxyType(self.final_ratios)

    def lookup(self, profile: Sequence[int]) -> float:
        """Ratio of one profile.

        Raises
        ------
        KeyError
            If the profile is not in the table.
        """
        return self.final_ratios[tuple(profile)]

    def get_attrib_names(self) -> list[str]:
        return list(self.attrib_names)

    def get_x_counts(self) -> Mapping[SimilarityProfile, int]:
        return MappingProxyType(self.x_counts)

    def get_m_counts(self) -> Mapping[SimilarityProfile, int]:
        return MappingProxyType(self.m_counts)

    def __len__(self) -> int:
        return len(self.final_ratios)
