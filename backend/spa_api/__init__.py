"""
Spa order API: order lifecycle, checkout and commission settlement.
"""
