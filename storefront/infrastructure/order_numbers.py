import time


def time_based_order_number() -> str:
    """ORD + epoch milliseconds; uniqueness is enforced by the ledger, not here"""
    return f"ORD{int(time.time() * 1000)}"
