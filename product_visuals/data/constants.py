# product_visuals/data/constants.py
from enum import Enum


class ShotKind(str, Enum):
    """The fixed shot catalog, in output order."""
    DUO = "duo"
    SOLO = "solo"
    FLATLAY_FRONT = "flatlay_front"
    FLATLAY_BACK = "flatlay_back"
    CLOSEUP_FRONT = "closeup_front"
    CLOSEUP_BACK = "closeup_back"


SHOT_CATALOG: tuple[ShotKind, ...] = tuple(ShotKind)

HUMAN_SHOT_KINDS = frozenset({ShotKind.DUO, ShotKind.SOLO})


class Subject(str, Enum):
    ADULT = "adult"
    KID = "kid"
    PRODUCT = "product"


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        match self:
            case JobStatus.COMPLETED | JobStatus.FAILED:
                return True
            case JobStatus.PENDING | JobStatus.PROCESSING:
                return False


class ShotStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Resolution(str, Enum):
    UHD_4K = "4K"
    QHD_2K = "2K"


ASPECT_RATIOS = ("1:1", "4:5", "9:16", "16:9")


class EventName(str, Enum):
    """Broadcast event vocabulary."""
    SHOT_PROCESSING = "shot_processing"
    SHOT_COMPLETED = "shot_completed"
    PROGRESS = "progress"
    COMPLETE = "complete"


ROOM_PREFIX = "job:"
