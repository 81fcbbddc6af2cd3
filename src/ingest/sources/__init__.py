from __future__ import annotations

from .aicte import AicteAdapter
from .buddy4study import Buddy4StudyAdapter
from .national_scholarship_portal import NationalScholarshipPortalAdapter
from .ugc import UgcAdapter
from .vidya_lakshmi import VidyaLakshmiAdapter

__all__ = [
    "AicteAdapter",
    "Buddy4StudyAdapter",
    "NationalScholarshipPortalAdapter",
    "UgcAdapter",
    "VidyaLakshmiAdapter",
]
