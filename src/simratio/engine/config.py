"""Round configuration and result dataclasses."""

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from simratio.config import RatiosConfig


@dataclass
class RoundConfig:
    """Configuration for one disambiguation round.

    Attributes
    ----------
    records_path : Path
        Delimited records file with a header row.
    nonmatch_pairs : Path | None
        Known non-match uid pairs shared by every group.
    match_pairs : Path | None
        Known match uid pairs shared by every group.
    group_training : dict[str, tuple[Path, Path]]
        Per-group ``(nonmatch, match)`` files overriding the shared ones.
    groups : list[str] | None
        Groups to build, in order. None uses every registry group.
    uid_column : str
        Name of the uid column in the records file.
    record_delimiter : str
        Field separator of the records file.
    attribute_config : Path | None
        JSON attribute config. None uses the inventor attributes.
    smooth_components : bool
        Smooth each group table before merging.
    smooth_joint : bool
        Smooth the joint table after merging.
    reuse_ratios : bool
        Load an existing ratio file instead of training, when present.
    write_stats : bool
        Write per-group count dumps.
    output_dir : Path
        Directory for the ratio file, count dumps and audit artifacts.
    ratios_filename : str
        Name of the ratio file inside ``output_dir``.
    ratios : RatiosConfig
        Ratio construction and smoothing settings.
    """

    records_path: Path
    nonmatch_pairs: Path | None = None
    match_pairs: Path | None = None
    group_training: dict[str, tuple[Path, Path]] = field(default_factory=dict)
    groups: list[str] | None = None
    uid_column: str = "uid"
    record_delimiter: str = ","
    attribute_config: Path | None = None
    smooth_components: bool = True
    smooth_joint: bool = True
    reuse_ratios: bool = False
    write_stats: bool = True
    output_dir: Path = Path("out")
    ratios_filename: str = "ratios.txt"
    ratios: RatiosConfig = field(default_factory=RatiosConfig)

    def __post_init__(self) -> None:
        """Normalize paths and validate."""
        self.records_path = Path(self.records_path)
        self.output_dir = Path(self.output_dir)
        if self.nonmatch_pairs is not None:
            self.nonmatch_pairs = Path(self.nonmatch_pairs)
        if self.match_pairs is not None:
            self.match_pairs = Path(self.match_pairs)
        if self.attribute_config is not None:
            self.attribute_config = Path(self.attribute_config)
        self.group_training = {
            group: (Path(nonmatch), Path(match))
            for group, (nonmatch, match) in self.group_training.items()
        }

        if (self.nonmatch_pairs is None) != (self.match_pairs is None):
            raise ValueError("nonmatch_pairs and match_pairs must be given together")

        if self.groups is not None and not self.groups:
            raise ValueError("groups must be None or non-empty")

        if not self.uid_column:
            raise ValueError("uid_column must be non-empty")

        if not self.ratios_filename or Path(self.ratios_filename).name != self.ratios_filename:
            raise ValueError(
                f"ratios_filename must be a plain file name, got {self.ratios_filename!r}"
            )

    @property
    def ratios_path(self) -> Path:
        """Location of the joint ratio file."""
        return self.output_dir / self.ratios_filename

    def training_files(self, group: str) -> tuple[Path, Path]:
        """Non-match and match files for one group.

        Raises
        ------
        ValueError
            If the group has no override and no shared files are set.
        """
        if group in self.group_training:
            return self.group_training[group]
        if self.nonmatch_pairs is None or self.match_pairs is None:
            raise ValueError(f"No training files for group '{group}'")
        return self.nonmatch_pairs, self.match_pairs

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = asdict(self)
        for key in (
            "records_path",
            "nonmatch_pairs",
            "match_pairs",
            "attribute_config",
            "output_dir",
        ):
            data[key] = str(data[key]) if data[key] is not None else None
        data["group_training"] = {
            group: [str(nonmatch), str(match)]
            for group, (nonmatch, match) in self.group_training.items()
        }
        return data


@dataclass
class RoundResult:
    """Results from one round.

    Attributes
    ----------
    success : bool
        Whether the round completed.
    run_id : str | None
        Audit run identifier.
    total_records : int
        Records in the uid index (0 when ratios were reused).
    pairs_counted : int
        Training pairs tallied, summed over groups.
    pairs_skipped : int
        Training pairs skipped for an unknown uid or a partial profile.
    joint_entries : int
        Profiles in the final joint table.
    reused_ratios : bool
        True if an existing ratio file was loaded instead of training.
    smoothing : dict[str, str]
        Smoothing status per table ("component:<group>" or "joint").
    output_files : dict[str, str]
        Map of artifact type to file path.
    error_message : str | None
        Error message if failed.
    """

    success: bool
    run_id: str | None = None
    total_records: int = 0
    pairs_counted: int = 0
    pairs_skipped: int = 0
    joint_entries: int = 0
    reused_ratios: bool = False
    smoothing: dict[str, str] = field(default_factory=dict)
    output_files: dict[str, str] = field(default_factory=dict)
    error_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)
