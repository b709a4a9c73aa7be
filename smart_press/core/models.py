"""Value objects passed between the encoder, the search and its callers."""

from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from smart_press.config import TuningOptions

# Strategy tags
STRATEGY_PSNR = "psnr"
STRATEGY_SIZE = "size"
STRATEGY_LOSSLESS = "lossless"
STRATEGY_DIRECT = "direct"

STRATEGIES = (STRATEGY_PSNR, STRATEGY_SIZE, STRATEGY_DIRECT, STRATEGY_LOSSLESS)


@dataclass(frozen=True)
class EncodeRequest:
    """One adaptive encode: what to encode, into what, and where."""

    image: Any
    format: str
    destination: str
    options: TuningOptions = field(default_factory=TuningOptions)


@dataclass
class Candidate:
    """A trial encode sitting in a temporary file.

    Attributes:
        quality: Quality the candidate was encoded at
        bytes: Size of the encoded file
        path: Temporary file holding the encode
        metric: PSNR against the reference, if measured
        strategy: Strategy that produced it (psnr, size, lossless)
        iteration: Trial index that produced it (1 = baseline)
    """

    quality: int
    bytes: int
    path: str
    metric: Optional[float] = None
    strategy: str = STRATEGY_SIZE
    iteration: int = 1


@dataclass(frozen=True)
class EncodeResult:
    """Outcome of one encode call.

    Attributes:
        quality: Final quality (100 for lossless formats)
        bytes: Size of the committed file
        baseline_bytes: Size of the encode at the initial quality
        metric: PSNR of the committed file, if measured
        iterations: Trial encodes spent, baseline included
        strategy: psnr, size, lossless or direct
        path: Destination the file was committed to
        format: Format actually encoded
        requested_format: Format the caller asked for
    """

    quality: int
    bytes: int
    baseline_bytes: int
    metric: Optional[float]
    iterations: int
    strategy: str
    path: str
    format: str
    requested_format: Optional[str] = None

    @property
    def psnr(self):
        return self.metric

    @property
    def substituted(self):
        """True when the requested format was replaced by another one."""
        return self.requested_format is not None and self.requested_format != self.format

    @property
    def savings_percent(self):
        """Size reduction against the baseline, None without a baseline."""
        if not self.baseline_bytes:
            return None
        return (self.baseline_bytes - self.bytes) / self.baseline_bytes * 100.0

    def as_dict(self):
        return asdict(self)
