"""
Centralized constants for Custom Transcode Profiles.

Defaults mirror the values the settings form offers on a fresh install.
"""

# Global audio defaults
DEFAULT_AUDIO_CODEC = "aac"
DEFAULT_AUDIO_PARAMS = "-b:a 128k"
DEFAULT_THREAD_COUNT = 0  # 0 = let the encoder decide

# Per-tier defaults
DEFAULT_TIER_ENABLED = True
DEFAULT_VIDEO_CODEC = "libx264"
DEFAULT_INPUT_PARAMS = ""
DEFAULT_CODEC_PARAMS = "-crf 23 -preset veryfast"
DEFAULT_OUTPUT_FILTERS = ""

# Used when a tier is enabled but has no codec configured
FALLBACK_VIDEO_CODEC = "libx264"
FALLBACK_CODEC_PARAMS = "-crf 23"

# Argument flags emitted by the compiler
THREADS_FLAG = "-threads"
VIDEO_CODEC_FLAG = "-c:v"
AUDIO_CODEC_FLAG = "-c:a"

# Placeholders replaced in output filters
WIDTH_PLACEHOLDER = "%w"
HEIGHT_PLACEHOLDER = "%h"

# Score given to every compiled encoder, above any built-in encoder
PRIVILEGED_SCORE = 1000

# Profile name shared by all profiles in fixed naming mode
DEFAULT_FIXED_PROFILE_NAME = "custom-transcoder"
