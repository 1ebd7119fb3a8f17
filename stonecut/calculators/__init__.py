"""
Stone calculation engine.

Pure Python math. No I/O, no database.
Given a stair part draft and catalog rates, produce stone usage, cutting
costs, leftover pieces, layer allocation and part totals.
"""
