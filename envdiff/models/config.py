"""Configuration models for the environment comparison run."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class ViewportConfig(BaseModel):
    width: int = 1280
    height: int = 720
    name: str = "desktop"


class HttpCredentials(BaseModel):
    username: str
    password: str

    @field_validator("password", mode="before")
    @classmethod
    def resolve_env_password(cls, v: str) -> str:
        if isinstance(v, str) and v.startswith("env:"):
            env_var = v[4:]
            resolved = os.environ.get(env_var)
            if resolved is None:
                raise ValueError(f"Environment variable '{env_var}' not set")
            return resolved
        return v


class EnvironmentConfig(BaseModel):
    name: str
    base_url: str
    http_credentials: Optional[HttpCredentials] = None

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class CaptureConfig(BaseModel):
    navigation_timeout_ms: int = 150000
    max_attempts: int = Field(default=3, ge=1)
    retry_backoff_seconds: float = 1.0
    retry_backoff_factor: float = 2.0

    # Lazy-load scrolling
    scroll_step_px: int = Field(default=400, gt=0)
    scroll_pause_ms: int = 100
    max_scroll_steps: int = 200

    # Image readiness; a timeout is tolerated unless fail_on_image_timeout is set
    image_load_timeout_ms: int = 5000
    fail_on_image_timeout: bool = False

    settle_delay_ms: int = 1000
    full_page: bool = True
    cookie_dismiss_selectors: list[str] = Field(
        default_factory=lambda: [
            "#onetrust-accept-btn-handler",
            "#CybotCookiebotDialogBodyButtonAccept",
            "button#accept-cookies",
            "[aria-label='Accept cookies']",
            "[class*='cookie'] button:has-text('Accept')",
            "[id*='cookie'] button:has-text('Accept')",
        ]
    )


class ComparisonConfig(BaseModel):
    pixel_threshold: float = Field(default=0.1, ge=0.0, le=1.0)
    pass_threshold: float = Field(default=95.0, ge=0.0, le=100.0)
    canonical_width: int = Field(default=1280, gt=0)
    canonical_height: int = Field(default=4096, gt=0)
    include_anti_aliasing: bool = False
    diff_mask: bool = False
    diff_color: tuple[int, int, int] = (255, 0, 0)
    diff_color_alt: tuple[int, int, int] = (0, 160, 0)


class RunConfig(BaseModel):
    # Environments: reference is captured first, candidate second
    reference: EnvironmentConfig
    candidate: EnvironmentConfig

    # Route paths resolved against both base URLs
    paths: list[str] = Field(default_factory=list)

    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    comparison: ComparisonConfig = Field(default_factory=ComparisonConfig)

    # Execution
    page_timeout_seconds: int = 600
    max_parallel_pages: int = Field(default=1, ge=1)
    headless: bool = True
    user_agent: Optional[str] = None

    # Output
    screenshot_dir: str = "./screenshots"
    report_formats: list[str] = Field(default_factory=lambda: ["json"])
    report_output_dir: str = "./envdiff-reports"

    @model_validator(mode="after")
    def distinct_environment_names(self) -> "RunConfig":
        # Names double as screenshot directory names next to "diff"
        names = {self.reference.name, self.candidate.name}
        if len(names) != 2 or "diff" in names:
            raise ValueError("Environment names must differ from each other and from 'diff'")
        return self

    @field_validator("paths")
    @classmethod
    def dedupe_paths(cls, v: list[str]) -> list[str]:
        # "/events" and "events" resolve to the same URL and artifact
        seen: set[str] = set()
        unique = []
        for p in v:
            key = p.lstrip("/")
            if key not in seen:
                seen.add(key)
                unique.append(p)
        return unique

    @classmethod
    def load(cls, path: str | Path) -> "RunConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
