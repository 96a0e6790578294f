from collections import Counter
from threading import Lock
from typing import Dict, Counter as CounterType

_metrics: CounterType[str] = Counter()
_lock = Lock()


def _inc(key: str) -> None:
    with _lock:
        _metrics[key] += 1


def record_breakdown_computed() -> None:
    _inc("breakdowns_computed")


def record_voucher_overpayment() -> None:
    _inc("voucher_overpayments")


def record_basket_change() -> None:
    _inc("basket_changes")


def snapshot() -> Dict[str, int]:
    with _lock:
        return dict(_metrics)


def reset() -> None:
    with _lock:
        _metrics.clear()
