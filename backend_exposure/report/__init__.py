"""
Report assembly: the immutable ExposureReport and the analyze_wallet entry point.
"""

from backend_exposure.report.pipeline import analyze_wallet
from backend_exposure.report.report import ExposureReport

__all__ = ["ExposureReport", "analyze_wallet"]
