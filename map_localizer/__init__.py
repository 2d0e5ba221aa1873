"""
Scan-to-map lidar localization against a prebuilt point-cloud map.

Subpackages:
- common/: constants, SE(3) geometry, point-cloud helpers and file I/O
- models/: cloud filters, registration primitives, place recognition
- matching/: local map, initialization and the per-frame registration loop
- tools/: command-line entry points
"""

__version__ = "0.0.1"
