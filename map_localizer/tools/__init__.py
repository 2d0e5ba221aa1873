"""
Command-line tools.

- replay: run the localizer over a directory of frames, write a TUM trajectory
- build_index: build a Scan Context index from keyframes and their poses
"""
