from survey.models.dataset import DatasetInfo
from survey.models.permutation import UserIndexPermutation
from survey.models.rating import ProgressSummary, Rating, RatingRequest
from survey.models.sample import Sample, SampleResponse, Turn, TurnRole

__all__ = [
    "DatasetInfo",
    "ProgressSummary",
    "Rating",
    "RatingRequest",
    "Sample",
    "SampleResponse",
    "Turn",
    "TurnRole",
    "UserIndexPermutation",
]
