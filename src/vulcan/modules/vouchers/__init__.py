"""
Vouchers: equipment credit issued to approved applications and redeemed by
approved vendors.
"""

from vulcan.modules.vouchers.models import Product, Voucher, VoucherStatus, VoucherTransaction

__all__ = ["Product", "Voucher", "VoucherStatus", "VoucherTransaction"]
