"""
YouTube module for spot-sync.

This module is the candidate source used by the sync orchestrator:
    - searcher: YouTube Music search with retry, interactive prompt
    - matcher: Pure accept/reject decision for a candidate
    - models: Candidate dataclass

Usage:
    from spot_sync.youtube import YouTubeSearcher, select_candidate

    searcher = YouTubeSearcher()
    chosen = select_candidate(record, searcher.search(record.search_pattern))
"""

from spot_sync.youtube.matcher import accepts, match_tokens, select_candidate
from spot_sync.youtube.models import Candidate
from spot_sync.youtube.searcher import YouTubeSearcher, prompt_candidate

__all__ = [
    "Candidate",
    "YouTubeSearcher",
    "accepts",
    "match_tokens",
    "prompt_candidate",
    "select_candidate",
]
