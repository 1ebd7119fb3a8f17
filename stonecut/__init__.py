"""
Stone contract calculation service.

Cutting, leftover-stone and stair-layer pricing for stone fabrication contracts.
"""
