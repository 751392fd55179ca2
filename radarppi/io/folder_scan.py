"""
Folder scanning for pulse recordings (*.csv, case-insensitive).
"""

from pathlib import Path
from typing import List, Union

RECORD_SUFFIX = ".csv"


def _is_record(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() == RECORD_SUFFIX


def list_record_files(folder: Union[str, Path]) -> List[Path]:
    """Recording files in a folder, sorted by path. Unreadable folders yield []."""
    try:
        return sorted(p for p in Path(folder).iterdir() if _is_record(p))
    except OSError:
        return []


def count_record_files(folder: Union[str, Path]) -> int:
    """Number of recording files in a folder."""
    return len(list_record_files(folder))
