"""
Book recommendation engine.
"""

from recommender.engine import RecommendationEngine, score_candidate
from recommender.models import RecommendedBook, ScoredBook

__all__ = ["RecommendationEngine", "RecommendedBook", "ScoredBook", "score_candidate"]
