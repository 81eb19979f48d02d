"""Slate geometry derived by linear scaling from the reference design."""

from __future__ import annotations

from dataclasses import dataclass

from .config import DesignConfig
from .models import AspectRatio, ResolutionTier


@dataclass(frozen=True, slots=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    def inset(self, amount: float) -> Rect:
        return Rect(
            x=self.x + amount,
            y=self.y + amount,
            width=self.width - 2 * amount,
            height=self.height - 2 * amount,
        )

    def as_box(self) -> tuple[float, float, float, float]:
        """Pillow-style (x0, y0, x1, y1)."""
        return (self.x, self.y, self.right, self.bottom)


@dataclass(frozen=True, slots=True)
class Frame:
    """Stroked rectangle whose outer stroke edge sits exactly on `outer`."""

    outer: Rect
    thickness: float

    @property
    def stroke_path(self) -> Rect:
        """Path for center-drawn strokes (half the thickness inside `outer`)."""
        return self.outer.inset(self.thickness / 2)

    @property
    def inner(self) -> Rect:
        return self.outer.inset(self.thickness)


@dataclass(frozen=True, slots=True)
class CanvasPlan:
    width: int
    height: int
    box: Rect
    letterboxed: bool


@dataclass(frozen=True, slots=True)
class IconOnlyGeometry:
    """Layout for the 'No Descriptors' slate: a single centered icon."""

    canvas: CanvasPlan
    aspect_ratio: AspectRatio
    icon: Rect


@dataclass(frozen=True, slots=True)
class SlateGeometry:
    canvas: CanvasPlan
    aspect_ratio: AspectRatio
    main_band: Rect
    footer_band: Rect | None
    scale: float
    frame_margin: float
    frame: Frame
    footer_frame: Frame | None
    icon: Rect
    text_padding: float
    right_padding: float
    text_x: float
    text_top: float
    max_text_width: float
    available_text_height: float

    @property
    def has_footer(self) -> bool:
        return self.footer_band is not None


class LayoutEngine:
    """Turn ratio + margin + resolution into concrete pixel geometry."""

    def __init__(self, design: DesignConfig | None = None) -> None:
        self.design = design or DesignConfig()

    def plan_canvas(
        self,
        aspect_ratio: AspectRatio,
        *,
        margin: int,
        resolution: ResolutionTier,
    ) -> CanvasPlan:
        if margin < 0:
            raise ValueError("margin must be >= 0")
        factor = aspect_ratio.height_factor
        if margin == 0:
            height = resolution.height
            width = int(round(height / factor))
            return CanvasPlan(
                width=width,
                height=height,
                box=Rect(0.0, 0.0, float(width), float(height)),
                letterboxed=False,
            )

        box_width = resolution.width - 2 * margin
        if box_width <= 0:
            raise ValueError(
                f"margin {margin} leaves no room on a {resolution.width}px wide canvas"
            )
        box_height = box_width * factor
        box_y = (resolution.height - box_height) / 2
        return CanvasPlan(
            width=resolution.width,
            height=resolution.height,
            box=Rect(float(margin), box_y, float(box_width), box_height),
            letterboxed=True,
        )

    def compute_icon_only(
        self,
        aspect_ratio: AspectRatio,
        *,
        margin: int,
        resolution: ResolutionTier,
        icon_aspect: float,
    ) -> IconOnlyGeometry:
        canvas = self.plan_canvas(aspect_ratio, margin=margin, resolution=resolution)
        icon_height = float(canvas.height)
        icon_width = icon_height * icon_aspect
        return IconOnlyGeometry(
            canvas=canvas,
            aspect_ratio=aspect_ratio,
            icon=Rect((canvas.width - icon_width) / 2, 0.0, icon_width, icon_height),
        )

    def compute(
        self,
        aspect_ratio: AspectRatio,
        *,
        margin: int,
        resolution: ResolutionTier,
        has_footer: bool,
        icon_aspect: float,
    ) -> SlateGeometry:
        d = self.design
        canvas = self.plan_canvas(aspect_ratio, margin=margin, resolution=resolution)
        box = canvas.box

        footer_height = box.height * d.footer_share if has_footer else 0.0
        main_height = box.height - footer_height
        scale = main_height / d.reference_height

        frame_thickness = d.frame_thickness * scale
        frame_margin = d.frame_margin * scale
        icon_padding = d.icon_padding * scale
        text_padding = d.text_padding * scale
        right_padding = d.right_padding * scale
        text_safety = d.text_safety * scale

        main_band = Rect(box.x, box.y, box.width, main_height)

        icon_height = main_height - 2 * icon_padding
        icon = Rect(
            box.x + icon_padding,
            box.y + icon_padding,
            icon_height * icon_aspect,
            icon_height,
        )

        # With a footer the main frame runs to the band edge; the footer frame
        # continues directly below it.
        bottom_margin = 0.0 if has_footer else frame_margin
        frame = Frame(
            outer=Rect(
                box.x + frame_margin,
                box.y + frame_margin,
                box.width - 2 * frame_margin,
                main_height - frame_margin - bottom_margin,
            ),
            thickness=frame_thickness,
        )

        text_x = icon.right + text_padding
        frame_inner_right = box.right - frame_margin - frame_thickness
        max_text_width = frame_inner_right - text_x - right_padding
        available_text_height = frame.outer.height - 2 * frame_thickness - text_safety
        text_top = frame.outer.y + frame_thickness + text_safety / 2

        footer_band: Rect | None = None
        footer_frame: Frame | None = None
        if has_footer:
            footer_band = Rect(box.x, main_band.bottom, box.width, footer_height)
            footer_frame = Frame(
                outer=Rect(
                    box.x + frame_margin,
                    footer_band.y,
                    box.width - 2 * frame_margin,
                    footer_height - frame_margin,
                ),
                thickness=frame_thickness / 2,
            )

        return SlateGeometry(
            canvas=canvas,
            aspect_ratio=aspect_ratio,
            main_band=main_band,
            footer_band=footer_band,
            scale=scale,
            frame_margin=frame_margin,
            frame=frame,
            footer_frame=footer_frame,
            icon=icon,
            text_padding=text_padding,
            right_padding=right_padding,
            text_x=text_x,
            text_top=text_top,
            max_text_width=max_text_width,
            available_text_height=available_text_height,
        )
