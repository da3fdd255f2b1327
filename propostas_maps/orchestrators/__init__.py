"""Pipeline orchestration.

- map_pipeline: Run every stage for one region and report a summary
"""
