from collections import Counter
from threading import Lock
from typing import Dict, Counter as CounterType

_metrics: CounterType[str] = Counter()
_lock = Lock()


def _inc(key: str, amount: int = 1) -> None:
    with _lock:
        _metrics[key] += amount


def record_coupon_issued() -> None:
    _inc("coupons_issued")


def record_coupons_expired(count: int) -> None:
    if count > 0:
        _inc("coupons_expired", count)


def record_winner_drawn() -> None:
    _inc("winners_drawn")


def record_award_announced() -> None:
    _inc("awards_announced")


def record_email_failure() -> None:
    _inc("email_failures")


def snapshot() -> Dict[str, int]:
    with _lock:
        return dict(_metrics)


def reset() -> None:
    with _lock:
        _metrics.clear()
