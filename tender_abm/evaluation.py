"""
Bid evaluation for Tender ABM: MEAT scoring, the evaluator panel and award.

Evaluation reads only the frozen bid snapshot taken after every player has
bid. Scores come back in the same order as the snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .config import TenderConfig
from .models import BidSnapshot, EvaluatorAttitude
from .random_source import RandomSource

TIE_TOLERANCE = 1e-9
MIN_RATING = 1.0
MAX_RATING = 10.0


def normalize_weights(weights: Sequence[float]) -> Tuple[float, ...]:
    """Rescale weights to sum to one; a non-positive sum is treated as 1."""
    total = float(sum(weights))
    if total <= 0:
        total = 1.0
    return tuple(float(w) / total for w in weights)


def normalize_criterion(values: Sequence[float], higher_is_better: bool = True) -> np.ndarray:
    """Min-max normalize ``values`` to [0, 1] across the bidder pool.

    When every value is equal each bidder receives the full score of 1.
    """
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return arr
    low = float(arr.min())
    high = float(arr.max())
    spread = high - low
    if spread <= 0:
        return np.ones_like(arr)
    if higher_is_better:
        return (arr - low) / spread
    return (high - arr) / spread


def compute_meat_scores(bids: Sequence[BidSnapshot], weights: Sequence[float]) -> np.ndarray:
    """Most Economically Advantageous Tender score for each bid.

    Lower prices, higher quality and higher experience score better.
    """
    if not bids:
        return np.zeros(0)
    w_price, w_quality, w_experience = normalize_weights(weights)
    price = normalize_criterion([b.bid for b in bids], higher_is_better=False)
    quality = normalize_criterion([b.quality for b in bids])
    experience = normalize_criterion([b.experience for b in bids])
    return price * w_price + quality * w_quality + experience * w_experience


@dataclass(frozen=True)
class EvaluatorAgent:
    """A scoring agent turning a MEAT score into a 1-10 rating."""

    evaluator_id: int
    attitude: EvaluatorAttitude
    expertise_level: float

    def rate(self, meat_score: float, random_source: RandomSource) -> float:
        rating = MIN_RATING + float(meat_score) * (MAX_RATING - MIN_RATING)
        if self.attitude is EvaluatorAttitude.EXTREME:
            if rating > 7.0:
                rating *= 1.2
            elif rating < 4.0:
                rating *= 0.8
        noise_band = (1.0 - self.expertise_level) * 0.3 * rating
        if noise_band > 0:
            rating += random_source.uniform(-noise_band, noise_band)
        return float(np.clip(rating, MIN_RATING, MAX_RATING))


class EvaluatorPanel:
    """Fixed panel of evaluators created once per run."""

    def __init__(self, evaluators: Sequence[EvaluatorAgent]):
        self.evaluators: Tuple[EvaluatorAgent, ...] = tuple(evaluators)

    @classmethod
    def from_config(cls, config: TenderConfig, random_source: RandomSource) -> "EvaluatorPanel":
        evaluators = []
        for evaluator_id in range(config.N_EVALUATORS):
            attitude = (
                EvaluatorAttitude.EXTREME
                if random_source.random() < config.EVALUATOR_EXTREME_PROBABILITY
                else EvaluatorAttitude.MEDIUM
            )
            expertise = float(np.clip(random_source.uniform(*config.EVALUATOR_EXPERTISE_RANGE), 0.0, 1.0))
            evaluators.append(EvaluatorAgent(evaluator_id, attitude, expertise))
        return cls(evaluators)

    def __len__(self) -> int:
        return len(self.evaluators)

    def rate(self, meat_scores: Sequence[float], random_source: RandomSource) -> np.ndarray:
        """Ratings matrix of shape (evaluators, bidders)."""
        ratings = np.zeros((len(self.evaluators), len(meat_scores)))
        for row, evaluator in enumerate(self.evaluators):
            for col, score in enumerate(meat_scores):
                ratings[row, col] = evaluator.rate(score, random_source)
        return ratings

    @staticmethod
    def mean_ratings(ratings: np.ndarray) -> np.ndarray:
        """Per-bidder mean rating; an empty panel contributes 0."""
        if ratings.size == 0 or ratings.shape[0] == 0:
            return np.zeros(ratings.shape[1] if ratings.ndim == 2 else 0)
        return ratings.mean(axis=0)


@dataclass(frozen=True)
class WinnerResolution:
    final_scores: np.ndarray
    winner_index: Optional[int]
    random_tie_break: bool = False


def final_scores(
    meat_scores: np.ndarray,
    mean_ratings: np.ndarray,
    meat_share: float = 0.6,
    rating_share: float = 0.4,
) -> np.ndarray:
    return np.asarray(meat_scores, dtype=float) * meat_share + np.asarray(mean_ratings, dtype=float) * rating_share


def _closest(indices: List[int], values: np.ndarray, target: float) -> List[int]:
    return [i for i in indices if abs(values[i] - target) <= TIE_TOLERANCE]


def resolve_winner(
    bids: Sequence[BidSnapshot],
    scores: np.ndarray,
    random_source: RandomSource,
) -> WinnerResolution:
    """Pick the winning bid index.

    Highest final score wins; ties go to the most experienced bidder, then the
    lowest bid, and any remaining tie is broken by a uniform random draw.
    """
    scores = np.asarray(scores, dtype=float)
    if not bids:
        return WinnerResolution(final_scores=scores, winner_index=None)

    candidates = _closest(list(range(len(bids))), scores, float(scores.max()))
    if len(candidates) > 1:
        experience = np.array([b.experience for b in bids], dtype=float)
        candidates = _closest(candidates, experience, float(experience[candidates].max()))
    if len(candidates) > 1:
        prices = np.array([b.bid for b in bids], dtype=float)
        candidates = _closest(candidates, prices, float(prices[candidates].min()))
    if len(candidates) > 1:
        return WinnerResolution(
            final_scores=scores,
            winner_index=random_source.choice(candidates),
            random_tie_break=True,
        )
    return WinnerResolution(final_scores=scores, winner_index=candidates[0])
