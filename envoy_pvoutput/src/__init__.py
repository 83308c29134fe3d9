"""
Envoy-to-PVOutput uploader package.

Reads production metrics from a local Enphase IQ Gateway (Envoy), derives
energy produced since local midnight from the lifetime counter using a
persisted daily baseline, and posts a status update to PVOutput.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-001)

TODO:
- None
"""
