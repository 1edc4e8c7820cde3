"""
Custom Transcode Profiles (ctp) - Per-resolution encoder profile compiler

Turns loosely-typed transcoding settings into encoder profiles:
- Per-tier video codec, input options, codec options and output filters
- Global audio codec and options, thread count
- Encoder priorities that prefer the compiled encoders
- Hot reload with atomic table replacement
"""

__version__ = "0.1.0"
__package_name__ = "custom-transcode-profiles"
__short_name__ = "ctp"
