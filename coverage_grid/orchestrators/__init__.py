"""Pipeline orchestration.

Chains the stage functions in ``coverage_grid.activities`` into a single
lazy, cancellable producer of output batches and progress events.
"""
