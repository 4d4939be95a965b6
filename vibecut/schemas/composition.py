"""Entity model for the composition timeline.

A composition is an ordered list of pages; each page owns its elements and
lasts ``duration`` milliseconds. Audio tracks live at composition level and are
positioned on the global timeline by ``delay``.

JSON uses camelCase keys (``backgroundColor``, ``zIndex``) while the Python
attributes are snake_case. Unknown keys are kept so project files written by
newer editors survive an import/export round trip.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Number = int | float

ElementType = Literal["text", "image", "video", "group"]
TextAlign = Literal["left", "center", "right"]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class Animation(CamelModel):
    duration: Number
    props: dict[str, Any] = Field(default_factory=dict)
    ease: str | None = None
    delay: Number | None = None
    loop: bool | int | None = None


class ElementBase(CamelModel):
    id: str
    left: Number = 0
    top: Number = 0
    width: Number | None = None
    height: Number | None = None
    rotation: Number | None = None
    opacity: float | None = Field(default=None, ge=0, le=1)
    z_index: int | None = None
    delay: Number | None = None
    animation: Animation | None = None


class TextElement(ElementBase):
    type: Literal["text"] = "text"
    text: str = ""
    font_size: Number | None = None
    font_family: str | None = None
    color: str | None = None
    font_weight: str | int | None = None
    text_align: TextAlign | None = None


class ImageElement(ElementBase):
    type: Literal["image"] = "image"
    src: str = ""


class VideoElement(ElementBase):
    """Video clip; ``delay`` is the offset into the page at which it starts."""

    type: Literal["video"] = "video"
    src: str = ""
    volume: float | None = Field(default=None, ge=0, le=1)
    playback_rate: float | None = Field(default=None, gt=0)
    muted: bool | None = None
    loop: bool | None = None
    trim_before: Number | None = None
    trim_after: Number | None = None


class GroupElement(ElementBase):
    type: Literal["group"] = "group"
    elements: list["Element"] = Field(default_factory=list)


Element = Annotated[
    Union[TextElement, ImageElement, VideoElement, GroupElement],
    Field(discriminator="type"),
]

GroupElement.model_rebuild()


class Page(CamelModel):
    id: str
    name: str = ""
    duration: int = Field(default=5000, ge=0)  # ms
    background_color: str = "white"
    elements: list[Element] = Field(default_factory=list)


class Audio(CamelModel):
    id: str
    src: str = ""
    delay: Number = Field(default=0, ge=0)  # ms from composition start
    duration: Number = Field(default=0, ge=0)  # ms
    volume: float = Field(default=1, ge=0, le=1)
    trim_before: Number | None = None
    trim_after: Number | None = None
    playback_rate: float = Field(default=1, gt=0)
    muted: bool = False
    loop: bool = False
    tone_frequency: float = Field(default=1, ge=0.01, le=2)


class CompositionData(CamelModel):
    pages: list[Page] = Field(default_factory=list)
    fps: int = Field(default=30, gt=0)
    width: int = Field(default=1920, gt=0)
    height: int = Field(default=1080, gt=0)
    audios: list[Audio] = Field(default_factory=list)

    @property
    def total_duration_ms(self) -> int:
        return sum(page.duration for page in self.pages)


def iter_elements(elements: list[Any]):
    """Yield every element depth-first, including group children."""
    for element in elements:
        yield element
        if isinstance(element, GroupElement):
            yield from iter_elements(element.elements)


def iter_composition_elements(composition: CompositionData):
    """Yield ``(page, element)`` for every element in the composition."""
    for page in composition.pages:
        for element in iter_elements(page.elements):
            yield page, element
