"""Reusable patterns shared by the storefront vertical.

Each module is a self-contained building block: shop-scoped repository
access, workflow state machines and frozen domain configuration.
"""
