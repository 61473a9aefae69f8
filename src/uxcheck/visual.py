"""Visual regression baselines and pixel comparison.

Baselines live in ``screenshots/baselines/<route>--<width>.png`` and survive
across runs; current captures and diff images go to the per-run directory.
Pixel comparison uses pixelmatch on Pillow images.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from PIL import Image
from pixelmatch.contrib.PIL import pixelmatch

logger = logging.getLogger("uxcheck.visual")

BASELINES_DIR = Path("screenshots") / "baselines"
RUNS_DIR = Path("screenshots") / "runs"

# Per-pixel colour distance (0-1) above which two pixels count as different.
PIXEL_SENSITIVITY = 0.1


@dataclass(frozen=True)
class VisualOptions:
    """Visual-regression settings for one project run."""

    baselines_dir: Path
    run_dir: Path
    threshold: float = 0.1
    enabled: bool = True
    update_baselines: bool = False


@dataclass
class VisualComparison:
    """Result of comparing a capture against its baseline."""

    match: bool
    diff_pixels: int
    total_pixels: int
    diff_percent: float
    diff_path: Path | None = None
    dimension_mismatch: bool = False
    current_size: tuple[int, int] | None = None
    baseline_size: tuple[int, int] | None = None


@dataclass
class ScreenshotResult:
    """One breakpoint capture for one route."""

    width: int
    filename: str
    current_path: Path
    baseline_created: bool = False
    baseline_updated: bool = False
    visual: VisualComparison | None = None

    @property
    def failed(self) -> bool:
        return self.visual is not None and not self.visual.match


def route_slug(route: str) -> str:
    """``/`` → ``index``, ``/docs/intro`` → ``docs-intro``."""
    stripped = route.strip("/")
    return stripped.replace("/", "-") if stripped else "index"


def screenshot_filename(route: str, width: int) -> str:
    return f"{route_slug(route)}--{width}.png"


def save_as_baseline(current: Path, baseline: Path) -> None:
    """Copy a capture into the baselines directory."""
    baseline.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(current, baseline)


def compare_screenshots(
    current: Path,
    baseline: Path,
    diff_path: Path,
    threshold: float,
) -> VisualComparison:
    """
    Compare two PNG files pixel by pixel.

    Args:
        current: Freshly captured screenshot
        baseline: Stored baseline
        diff_path: Where to write the diff image if the comparison fails
        threshold: Maximum differing pixels, as a percentage (0-100)

    Returns:
        The comparison; a size change is an automatic failure with
        ``diff_pixels == -1`` and no diff image.
    """
    with Image.open(current) as cur_img, Image.open(baseline) as base_img:
        cur = cur_img.convert("RGBA")
        base = base_img.convert("RGBA")

    width, height = cur.size
    total_pixels = width * height

    if cur.size != base.size:
        return VisualComparison(
            match=False,
            diff_pixels=-1,
            total_pixels=total_pixels,
            diff_percent=100.0,
            diff_path=None,
            dimension_mismatch=True,
            current_size=cur.size,
            baseline_size=base.size,
        )

    diff_img = Image.new("RGBA", cur.size)
    diff_pixels = pixelmatch(cur, base, diff_img, threshold=PIXEL_SENSITIVITY)
    diff_percent = (diff_pixels / total_pixels) * 100 if total_pixels else 0.0
    match = diff_percent <= threshold

    if not match:
        diff_path.parent.mkdir(parents=True, exist_ok=True)
        diff_img.save(diff_path)

    return VisualComparison(
        match=match,
        diff_pixels=diff_pixels,
        total_pixels=total_pixels,
        diff_percent=diff_percent,
        diff_path=None if match else diff_path,
    )


def resolve_screenshot(
    current: Path,
    width: int,
    filename: str,
    options: VisualOptions,
) -> ScreenshotResult:
    """
    Apply the baseline policy to one capture.

    In order: update mode overwrites the baseline; disabled visual checks
    record nothing; a missing baseline is created from the capture;
    otherwise the capture is compared against the baseline.
    """
    result = ScreenshotResult(width=width, filename=filename, current_path=current)
    baseline = options.baselines_dir / filename

    if options.update_baselines:
        save_as_baseline(current, baseline)
        result.baseline_updated = True
    elif not options.enabled:
        pass
    elif not baseline.exists():
        save_as_baseline(current, baseline)
        result.baseline_created = True
        logger.info("Created baseline %s", baseline)
    else:
        diff_path = options.run_dir / "diffs" / filename
        result.visual = compare_screenshots(current, baseline, diff_path, options.threshold)
        if not result.visual.match:
            logger.info("Visual diff for %s: %.2f%%", filename, result.visual.diff_percent)
    return result
