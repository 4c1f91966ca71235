"""
Business logic services package.

WHY: Services hold the quotation decision workflow, separated from data
access (DAO layer) and from whichever web layer hosts it.
"""
