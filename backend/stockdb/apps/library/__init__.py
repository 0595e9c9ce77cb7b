"""
Library module.

Reference data used by receiving and dispatch: vendors, brands, customers,
teams and the product/item/sub category tree.
"""
