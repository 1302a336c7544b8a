"""Top risky accounts ranking: cache-aside reads and exposure event upserts."""

from riskboard.ranking.cache import DEFAULT_RANKED_SET_KEY, TopEntitiesCache
from riskboard.ranking.candidates import (
    SAMPLE_CANDIDATES,
    SAMPLE_PROFILES,
    CandidateSource,
    StaticCandidateSource,
    sample_candidate_source,
)
from riskboard.ranking.metrics import RankingMetrics
from riskboard.ranking.models import UNKNOWN_PROFILE, AccountProfile, ExposureEvent
from riskboard.ranking.sink import EXPOSURE_TOPIC, ExposureUpdateSink


__all__ = [
    "DEFAULT_RANKED_SET_KEY",
    "EXPOSURE_TOPIC",
    "SAMPLE_CANDIDATES",
    "SAMPLE_PROFILES",
    "UNKNOWN_PROFILE",
    "AccountProfile",
    "CandidateSource",
    "ExposureEvent",
    "ExposureUpdateSink",
    "RankingMetrics",
    "StaticCandidateSource",
    "TopEntitiesCache",
    "sample_candidate_source",
]
