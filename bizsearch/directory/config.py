from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

_SAMPLE_CSV = Path(__file__).resolve().parent.parent / "data" / "businesses.csv"


@dataclass(frozen=True)
class DirectoryConfig:
    """
    Location of the local business data set served by ``DataFrameDirectory``.
    """

    csv_path: Path = Path(os.getenv("BIZSEARCH_DIRECTORY_CSV", str(_SAMPLE_CSV)))


DEFAULT_DIRECTORY_CONFIG = DirectoryConfig()
