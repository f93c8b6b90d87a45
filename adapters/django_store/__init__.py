"""
CASA Django line-item store adapter.
Django ORM persistence behind the LineItemStore boundary.
"""
