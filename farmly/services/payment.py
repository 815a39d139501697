import os
from typing import Dict, Any


class PaymentError(Exception):
    pass


def process_payment(amount: float, payment_info: Dict[str, Any]) -> Dict[str, Any]:
    """
    Stand-in card gateway:
    - a card ending in "4242", or type "test", succeeds
    - any other card is declined
    - a non-positive amount is a gateway error
    Returns: {"success": bool, "transaction_id": str|None, "message": str}
    """
    if amount is None or float(amount) <= 0:
        raise PaymentError("amount must be positive")
    if payment_info.get("type") == "test" or str(payment_info.get("card_last4") or "") == "4242":
        tx = f"tx_{os.urandom(6).hex()}"
        return {"success": True, "transaction_id": tx, "message": "ok"}
    return {"success": False, "transaction_id": None, "message": "declined"}
