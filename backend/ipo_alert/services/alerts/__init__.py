"""
Price alert storage and evaluation.
"""
from ipo_alert.services.alerts.alert_store import AlertStore, AlertView
from ipo_alert.services.alerts.evaluator import PriceAlertEvaluator, EvaluationReport, condition_met

__all__ = [
    "AlertStore",
    "AlertView",
    "PriceAlertEvaluator",
    "EvaluationReport",
    "condition_met",
]
