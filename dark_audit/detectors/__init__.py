"""Dark pattern detectors, in the order a scan cycle runs them."""

from .base import BaseDetector, DetectorRun, ElementOutcome, Match, ScanContext
from .confirm_shaming import ConfirmShamingDetector
from .obscured_interface import ObscuredInterfaceDetector
from .preselected_opt_in import PreselectedOptInDetector
from .trick_question import TrickQuestionDetector
from .countdown_timer import CountdownTimerDetector
from .disguised_ad import DisguisedAdDetector

ALL_DETECTORS = [
    ConfirmShamingDetector,
    ObscuredInterfaceDetector,
    PreselectedOptInDetector,
    TrickQuestionDetector,
    CountdownTimerDetector,
    DisguisedAdDetector,
]


def build_detectors() -> list[BaseDetector]:
    return [detector_cls() for detector_cls in ALL_DETECTORS]
