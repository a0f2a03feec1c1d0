from .navigator import EncounterNavigator, find_part_of_children
from .orchestrator import NoteSynchronizer
from .reconstructor import RecordReader
from .vocabulary import VocabularyResolver

__all__ = [
    "EncounterNavigator",
    "NoteSynchronizer",
    "RecordReader",
    "VocabularyResolver",
    "find_part_of_children",
]
