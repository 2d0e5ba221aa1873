"""
Pluggable algorithm models.

Each concern is a closed set of strategies behind one interface, selected
once at start-up from the configuration:
- cloud_filter/: density reduction and ROI cropping
- registration/: scan-to-map alignment
- scan_context/: place recognition for initialization
"""
