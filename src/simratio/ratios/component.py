"""Per-group ratio construction from labeled training pairs.

A complete similarity profile is split into attribute groups (for the
inventor engine: personal names, and patent context). A ``RatioComponent``
owns one group: it compares the group's attributes for every training
pair, counts how often each sub-profile occurs among known non-matches (X)
and known matches (M), and turns the counts into Laplace-corrected
likelihood ratios. Components are merged into a joint ``Ratios`` table and
are not used afterwards.
"""

from collections.abc import Mapping
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
    validate_profile,
)
from simratio.models.records import Record
from simratio.smoothing.engine import SmoothingResult, smooth_ratios
from simratio.smoothing.qp import QPSolver
from simratio.utils import read_text_utf8

__all__ = ["RatioComponent", "read_training_pairs", "laplace_ratio"]

NONMATCH = "nonmatch"
MATCH = "match"


def laplace_ratio(m_count: int, x_count: int, laplace_base: int) -> float:
    """Laplace-corrected match / non-match ratio ``(m + L) / (x + L)``."""
    return (m_count + laplace_base) / (x_count + laplace_base)


def read_training_pairs(path: Path | str, delim: str | None = None) -> list[tuple[str, str]]:
    """Read uid pairs, one pair per line.

    Blank lines and lines starting with ``#`` are ignored.

    Parameters
    ----------
    path : Path | str
        Training pair file.
    delim : str | None, optional
        Separator between the two uids; None splits on whitespace.

    Returns
    -------
    list[tuple[str, str]]
        Pairs in file order.

    Raises
    ------
    RatiosError
        IO_FAILURE if the file cannot be read or a line does not hold
        exactly two uids.
    """
    path = Path(path)
    text = read_text_utf8(path, "training pairs")

    pairs: list[tuple[str, str]] = []
    for line_num, line in enumerate(text.splitlines(), 1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        fields = [field.strip() for field in stripped.split(delim)]
        if len(fields) != 2 or not all(fields):
            raise RatiosError(
                ErrorKind.IO_FAILURE,
                f"{path}:{line_num}: expected two uids, got {stripped!r}",
            )
        pairs.append((fields[0], fields[1]))
    return pairs


class RatioComponent:
    """Similarity-profile ratios for one attribute group.

    Attributes
    ----------
    group : str
        Attribute group identifier.
    attrib_names : list[str]
        Attributes of the group, in full-profile order.
    positions_in_ratios : list[int]
        Dimension of each attribute in the full similarity profile.
    positions_in_record : list[int]
        Column of each attribute in the record layout.
    x_counts : dict[SimilarityProfile, int]
        Sub-profile occurrences among non-match pairs.
    m_counts : dict[SimilarityProfile, int]
        Sub-profile occurrences among match pairs.
    is_ready : bool
        True once counts have been turned into ratios.
    stats : dict[str, int]
        Training pair counters from the last ``prepare``.
    smoothing : SmoothingResult | None
        Result of the last ``smooth`` call.
    """

    def __init__(
        self,
        uid_index: Mapping[str, Record],
        group: str,
        registry: AttributeRegistry | None = None,
        config: RatiosConfig | None = None,
        logger: AuditLogger | None = None,
    ) -> None:
        """Initialize component for one group.

        Parameters
        ----------
        uid_index : Mapping[str, Record]
            Records by uid; all records share one column layout.
        group : str
            Attribute group name.
        registry : AttributeRegistry | None, optional
            Attribute metadata, by default the inventor registry.
        config : RatiosConfig | None, optional
            Laplace base, delimiters and smoothing settings.
        logger : AuditLogger | None, optional
            Audit logger for events, by default None.

        Raises
        ------
        RatiosError
            MALFORMED_CONFIGURATION if the group is unknown, the index is
            empty or a group attribute has no record column.
        """
        self.registry = registry if registry is not None else DEFAULT_REGISTRY
        self.config = config if config is not None else RatiosConfig()
        self.logger = logger
        self.group = group
        self._uid_index = uid_index

        self._specs = self.registry.group(group)
        self.attrib_names = [spec.name for spec in self._specs]
        self.positions_in_ratios = [self.registry.position(name) for name in self.attrib_names]
        self.positions_in_record = self._resolve_record_positions()
        self.min_sp = get_min_similarity(self.attrib_names, self.registry)
        self.max_sp = get_max_similarity(self.attrib_names, self.registry)

        self.x_counts: dict[SimilarityProfile, int] = {}
        self.m_counts: dict[SimilarityProfile, int] = {}
        self._ratio_map: dict[SimilarityProfile, float] = {}
        self.is_ready = False
        self.stats: dict[str, int] = {}
        self.smoothing: SmoothingResult | None = None

    def _resolve_record_positions(self) -> list[int]:
        sample = next(iter(self._uid_index.values()), None)
        if sample is None:
            raise RatiosError(
                ErrorKind.MALFORMED_CONFIGURATION,
                f"Group {self.group}: uid index is empty",
            )
        positions: list[int] = []
        for name in self.attrib_names:
            try:
                positions.append(sample.column_index(name))
            except KeyError:
                raise RatiosError(
                    ErrorKind.MALFORMED_CONFIGURATION,
                    f"Group {self.group}: records have no '{name}' column",
                ) from None
        return positions

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    def compute_sub_profile(self, record_a: Record, record_b: Record) -> SimilarityProfile:
        """Compare the group's attributes of two records.

        Raises
        ------
        RatiosError
            PARTIAL_PROFILE_MISSING if any attribute cannot be compared;
            MALFORMED_CONFIGURATION if a comparator leaves its bounds.
        """
        values: list[int] = []
        for spec, pos in zip(self._specs, self.positions_in_record, strict=True):
            score = spec.compare(record_a.value_at(pos), record_b.value_at(pos))
            if score is None:
                raise RatiosError(
                    ErrorKind.PARTIAL_PROFILE_MISSING,
                    f"Group {self.group}: '{spec.name}' not comparable for "
                    f"{record_a.uid} / {record_b.uid}",
                )
            values.append(score)

        profile = tuple(values)
        validate_profile(profile, self.min_sp, self.max_sp)
        return profile

    def _missing_value_uid(self, record_a: Record, record_b: Record) -> str:
        for record in (record_a, record_b):
            if any(record.value_at(pos) is None for pos in self.positions_in_record):
                return record.uid
        return record_a.uid

    def _sp_stats(
        self,
        pairs: list[tuple[str, str]],
        counts: dict[SimilarityProfile, int],
        source: str,
    ) -> None:
        for uid_a, uid_b in pairs:
            self.stats["pairs_in"] += 1
            record_a = self._uid_index.get(uid_a)
            record_b = self._uid_index.get(uid_b)

            if record_a is None or record_b is None:
                self.stats["pairs_skipped_unknown_uid"] += 1
                if self.logger:
                    self.logger.pair_skipped(
                        uid=uid_a if record_a is None else uid_b,
                        group=self.group,
                        reason=ErrorKind.UNKNOWN_UID.value,
                        source=source,
                        pair=(uid_a, uid_b),
                    )
                continue

            try:
                profile = self.compute_sub_profile(record_a, record_b)
            except RatiosError as e:
                if e.kind is not ErrorKind.PARTIAL_PROFILE_MISSING:
                    raise
                self.stats["pairs_skipped_partial_profile"] += 1
                if self.logger:
                    self.logger.pair_skipped(
                        uid=self._missing_value_uid(record_a, record_b),
                        group=self.group,
                        reason=e.kind.value,
                        source=source,
                        pair=(uid_a, uid_b),
                    )
                continue

            counts[profile] = counts.get(profile, 0) + 1
            self.stats["pairs_counted"] += 1

    def prepare(self, nonmatch_pairs_file: Path | str, match_pairs_file: Path | str) -> None:
        """Count sub-profiles of the training pairs and create ratios.

        Parameters
        ----------
        nonmatch_pairs_file : Path | str
            Known non-match uid pairs (set X).
        match_pairs_file : Path | str
            Known match uid pairs (set M).

        Raises
        ------
        RatiosError
            IO_FAILURE if a training file is unreadable or malformed.
        """
        x_pairs = read_training_pairs(nonmatch_pairs_file, self.config.pair_delim)
        m_pairs = read_training_pairs(match_pairs_file, self.config.pair_delim)

        self.stats = {
            "pairs_in": 0,
            "pairs_counted": 0,
            "pairs_skipped_unknown_uid": 0,
            "pairs_skipped_partial_profile": 0,
        }
        self.x_counts = {}
        self.m_counts = {}
        self._sp_stats(x_pairs, self.x_counts, NONMATCH)
        self._sp_stats(m_pairs, self.m_counts, MATCH)

        self.create_ratios()

        if self.logger:
            self.logger.event(
                "component_prepared",
                data={
                    "group": self.group,
                    "nonmatch_profiles": len(self.x_counts),
                    "match_profiles": len(self.m_counts),
                    **self.stats,
                },
            )

    def create_ratios(self) -> None:
        """Turn counts into Laplace-corrected ratios for every observed sub-profile."""
        base = self.config.laplace_base
        observed = sorted(set(self.x_counts) | set(self.m_counts))
        self._ratio_map = {
            profile: laplace_ratio(
                self.m_counts.get(profile, 0), self.x_counts.get(profile, 0), base
            )
            for profile in observed
        }
        self.is_ready = True

    def smooth(self, solver: QPSolver | None = None) -> SmoothingResult:
        """Fill and monotonize the ratios over the group's sub-lattice.

        Raises
        ------
        RatiosError
            NOT_READY before ratio creation; SOLVER_FAILURE from the backend.
        """
        if not self.is_ready:
            raise RatiosError(ErrorKind.NOT_READY, f"Group {self.group}: ratios not created")

        result = smooth_ratios(
            self._ratio_map,
            self.x_counts,
            self.m_counts,
            self.min_sp,
            self.max_sp,
            self.config,
            solver=solver,
            logger=self.logger,
            table=f"component:{self.group}",
        )
        self._ratio_map = result.ratios
        self.smoothing = result
        return result

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get_ratios_map(self) -> Mapping[SimilarityProfile, float]:
        """Read-only sub-profile to ratio map.

        Raises
        ------
        RatiosError
            NOT_READY before ratio creation.
        """
        if not self.is_ready:
            raise RatiosError(
                ErrorKind.NOT_READY, f"Ratio component map for group {self.group} is not ready"
            )
        return MappingProxyType(self._ratio_map)

    def get_x_counts(self) -> Mapping[SimilarityProfile, int]:
        return MappingProxyType(self.x_counts)

    def get_m_counts(self) -> Mapping[SimilarityProfile, int]:
        return MappingProxyType(self.m_counts)

    def get_component_positions_in_ratios(self) -> list[int]:
        return list(self.positions_in_ratios)

    def get_component_positions_in_record(self) -> list[int]:
        return list(self.positions_in_record)

    def get_attrib_names(self) -> list[str]:
        return list(self.attrib_names)

    def stats_output(self, path: Path | str) -> None:
        """Write raw counts for diagnostics.

        Header: attribute names joined by the primary delimiter, then
        ``x_count`` and ``m_count`` after secondary delimiters. One line per
        observed sub-profile in profile order.

        Raises
        ------
        RatiosError
            IO_FAILURE if the file cannot be written.
        """
        primary = self.config.primary_delim
        secondary = self.config.secondary_delim
        lines = [secondary.join([primary.join(self.attrib_names), "x_count", "m_count"])]
        for profile in sorted(set(self.x_counts) | set(self.m_counts)):
            lines.append(
                secondary.join(
                    [
                        format_profile(profile, primary),
                        str(self.x_counts.get(profile, 0)),
                        str(self.m_counts.get(profile, 0)),
                    ]
                )
            )

        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        except OSError as e:
            raise RatiosError(ErrorKind.IO_FAILURE, f"Cannot write count dump {path}: {e}") from e
