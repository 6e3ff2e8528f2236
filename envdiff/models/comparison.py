"""Comparison data structures produced by the orchestrator and aggregator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Literal, Union

from PIL import Image
from pydantic import BaseModel, ConfigDict, Field

PASSED = "passed"
FAILED = "failed"
ERRORED = "errored"


class PageTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str


@dataclass(frozen=True)
class CapturedImage:
    """Decoded RGBA raster (4 bytes per pixel)."""

    width: int
    height: int
    pixels: bytes

    @classmethod
    def from_pil(cls, image: Image.Image) -> "CapturedImage":
        rgba = image.convert("RGBA")
        return cls(width=rgba.width, height=rgba.height, pixels=rgba.tobytes())

    def to_pil(self) -> Image.Image:
        return Image.frombytes("RGBA", (self.width, self.height), self.pixels)

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def total_pixels(self) -> int:
        return self.width * self.height


class SimilarityOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["similarity"] = "similarity"
    percentage: float = Field(ge=0.0, le=100.0)
    mismatched_pixels: int = Field(ge=0)


class SizeMismatchOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["size_mismatch"] = "size_mismatch"
    reference_size: tuple[int, int] | None = None
    candidate_size: tuple[int, int] | None = None


class CaptureErrorOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["capture_error"] = "capture_error"
    message: str


ComparisonOutcome = Annotated[
    Union[SimilarityOutcome, SizeMismatchOutcome, CaptureErrorOutcome],
    Field(discriminator="kind"),
]


class PageComparisonResult(BaseModel):
    """Outcome of comparing one page path across both environments."""
    model_config = ConfigDict(frozen=True)

    page: PageTarget
    reference_url: str = ""
    candidate_url: str = ""
    reference_image_path: str
    candidate_image_path: str
    diff_image_path: str
    outcome: ComparisonOutcome
    duration_seconds: float = 0.0


class ClassifiedResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    result: PageComparisonResult
    status: str  # passed, failed, errored


class RunSummary(BaseModel):
    run_id: str = ""
    started_at: str = ""
    completed_at: str = ""
    duration_seconds: float = 0.0
    reference_url: str = ""
    candidate_url: str = ""
    results: list[ClassifiedResult] = Field(default_factory=list)
    passed: int = 0
    failed: int = 0
    errored: int = 0

    @property
    def total(self) -> int:
        return len(self.results)
