"""
Exposure scoring: one CategoryScore per dimension and a weighted overall score.
"""

from backend_exposure.scoring.engine import ExposureInputs, calculate_overall_score, score_categories
from backend_exposure.scoring.models import CategoryScore, risk_level

__all__ = ["CategoryScore", "ExposureInputs", "calculate_overall_score", "risk_level", "score_categories"]
