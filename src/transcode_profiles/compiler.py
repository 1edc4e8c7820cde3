"""
Profile compiler - Turn a settings snapshot into a table of encoder profiles.

For every enabled tier, ascending:
- one video profile: input options, then the codec selector, codec options
  and output filters (with %w/%h resolved) as output options
- one audio profile built from the global audio settings, sharing the
  video profile's name so the pair travels together

After the tiers, one priority entry per distinct encoder (video first, then
audio) at a privileged score so compiled encoders win over built-in ones.

Compilation is pure and total: the same snapshot always yields an equal
table, and bad settings degrade to documented fallbacks instead of errors.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

from .arguments import join_arguments, resolve_placeholders, tokenize
from .constants import (
    AUDIO_CODEC_FLAG,
    DEFAULT_AUDIO_CODEC,
    DEFAULT_FIXED_PROFILE_NAME,
    FALLBACK_CODEC_PARAMS,
    FALLBACK_VIDEO_CODEC,
    PRIVILEGED_SCORE,
    THREADS_FLAG,
    VIDEO_CODEC_FLAG,
)
from .errors import Diagnostic, DiagnosticKind
from .snapshot import ConfigSnapshot, ResolutionConfig
from .tiers import DEFAULT_CATALOG, ResolutionTier, TierCatalog

logger = logging.getLogger(__name__)


class MediaKind(Enum):
    VIDEO = "video"
    AUDIO = "audio"


class ProfileNaming(Enum):
    """How profile names are derived."""

    PER_TIER = "per_tier"  # "<tier>p-<codec>"
    FIXED = "fixed"  # one shared name for every profile


@dataclass(frozen=True)
class CompilerOptions:
    """Knobs that select between the registration variants."""

    naming: ProfileNaming = ProfileNaming.PER_TIER
    fixed_profile_name: str = DEFAULT_FIXED_PROFILE_NAME
    priority_score: int = PRIVILEGED_SCORE
    inline_audio_codec: bool = False  # put "-c:a <codec>" into the audio output options


@dataclass(frozen=True)
class CompiledProfile:
    """
    Input/output arguments for one encoder applied to one tier.

    Video output options always carry "-c:v <codec>". Audio output options
    hold only the audio options unless CompilerOptions.inline_audio_codec is
    set; executors that apply options verbatim should set it, or flatten a
    pair with build_argument_list(), which adds "-c:a <codec>".
    """

    kind: MediaKind
    tier_id: int
    encoder_name: str
    profile_name: str
    input_options: tuple[str, ...] = ()
    output_options: tuple[str, ...] = ()


@dataclass(frozen=True)
class EncoderPriorityEntry:
    kind: MediaKind
    encoder_name: str
    score: int


@dataclass(frozen=True)
class ProfileTable:
    """
    Immutable result of one compilation.

    The registry swaps whole tables; nothing ever edits one in place.
    """

    profiles: tuple[CompiledProfile, ...] = ()
    priorities: tuple[EncoderPriorityEntry, ...] = ()
    enabled_tiers: tuple[int, ...] = ()
    skipped_tiers: tuple[int, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = field(default=(), compare=False)

    def profiles_for(self, kind: MediaKind) -> list[CompiledProfile]:
        return [p for p in self.profiles if p.kind == kind]

    def profiles_for_tier(self, tier_id: int) -> list[CompiledProfile]:
        return [p for p in self.profiles if p.tier_id == tier_id]

    def priority_of(self, kind: MediaKind, encoder_name: str) -> int | None:
        for entry in self.priorities:
            if entry.kind == kind and entry.encoder_name == encoder_name:
                return entry.score
        return None

    def preferred_encoder(self, kind: MediaKind) -> str | None:
        """Highest scoring encoder of a kind; the first registered wins ties."""
        best: EncoderPriorityEntry | None = None
        for entry in self.priorities:
            if entry.kind == kind and (best is None or entry.score > best.score):
                best = entry
        return best.encoder_name if best else None

    def find(self, kind: MediaKind, tier_id: int) -> CompiledProfile | None:
        """
        Select the profile a job of this kind and tier should use.

        Among the candidates for the tier, the encoder with the highest
        priority wins; ties and unranked encoders keep table order.
        """
        candidates = [p for p in self.profiles if p.kind == kind and p.tier_id == tier_id]
        if not candidates:
            return None

        order = [(e.encoder_name, e.score) for e in self.priorities if e.kind == kind]

        def rank(profile: CompiledProfile) -> tuple[int, int]:
            for index, (name, score) in enumerate(order):
                if name == profile.encoder_name:
                    return (-score, index)
            return (0, len(order))

        return min(candidates, key=rank)

    @property
    def is_empty(self) -> bool:
        return not self.profiles


def profile_name_for(tier: ResolutionTier, codec: str, options: CompilerOptions) -> str:
    """Deterministic profile name for a tier and codec."""
    if options.naming == ProfileNaming.FIXED:
        return options.fixed_profile_name
    return f"{tier.label}-{codec}"


def _thread_options(thread_count: int) -> list[str]:
    if thread_count > 0:
        return [THREADS_FLAG, str(thread_count)]
    return []


def _build_video_options(
    tier: ResolutionTier, config: ResolutionConfig, thread_count: int
) -> tuple[str, list[str], list[str]]:
    """Return (codec, input options, output options) for a tier with a codec."""
    filters = resolve_placeholders(config.output_filters, tier.width, tier.height)

    input_options = tokenize(config.input_params)
    output_options = _thread_options(thread_count)
    output_options.extend([VIDEO_CODEC_FLAG, config.video_codec])
    output_options.extend(tokenize(config.codec_params))
    output_options.extend(tokenize(filters))

    return config.video_codec, input_options, output_options


def _build_fallback_video_options(thread_count: int) -> tuple[str, list[str], list[str]]:
    """Safe profile for an enabled tier without a codec: default codec, nothing else."""
    output_options = _thread_options(thread_count)
    output_options.extend([VIDEO_CODEC_FLAG, FALLBACK_VIDEO_CODEC])
    output_options.extend(tokenize(FALLBACK_CODEC_PARAMS))
    return FALLBACK_VIDEO_CODEC, [], output_options


def _append_unique(entries: list[str], name: str) -> None:
    if name not in entries:
        entries.append(name)


def compile_profiles(
    snapshot: ConfigSnapshot,
    catalog: TierCatalog = DEFAULT_CATALOG,
    options: CompilerOptions | None = None,
) -> ProfileTable:
    """
    Compile a snapshot into a profile table.

    Args:
        snapshot: Settings to compile
        catalog: Tiers to compile, ascending
        options: Naming and priority options (defaults: per-tier names, score 1000)

    Returns:
        ProfileTable; never raises
    """
    if options is None:
        options = CompilerOptions()

    diagnostics: list[Diagnostic] = list(snapshot.diagnostics)
    profiles: list[CompiledProfile] = []
    video_encoders: list[str] = []
    audio_encoders: list[str] = []
    enabled: list[int] = []
    skipped: list[int] = []

    global_config = snapshot.global_config
    audio_codec = global_config.audio_codec
    if not audio_codec:
        diagnostics.append(
            Diagnostic(
                DiagnosticKind.CONFIGURATION_GAP,
                "audio_codec",
                f"empty audio codec, using {DEFAULT_AUDIO_CODEC}",
            )
        )
        logger.warning(f"No audio codec configured, using {DEFAULT_AUDIO_CODEC}")
        audio_codec = DEFAULT_AUDIO_CODEC

    audio_output = tokenize(global_config.audio_params)
    if options.inline_audio_codec:
        audio_output = [AUDIO_CODEC_FLAG, audio_codec, *audio_output]

    for tier in catalog:
        config = snapshot.per_tier.get(tier.id)
        if config is None:
            diagnostics.append(
                Diagnostic(DiagnosticKind.VALIDATION_FALLBACK, tier.label, "no settings for tier, using defaults")
            )
            config = ResolutionConfig()

        if not config.enabled:
            logger.info(f"Resolution {tier.label} disabled, skipping.")
            skipped.append(tier.id)
            continue

        if config.video_codec:
            codec, input_options, output_options = _build_video_options(tier, config, global_config.thread_count)
        else:
            diagnostics.append(
                Diagnostic(
                    DiagnosticKind.CONFIGURATION_GAP,
                    tier.label,
                    f"enabled without a video codec, using {FALLBACK_VIDEO_CODEC} {FALLBACK_CODEC_PARAMS}",
                )
            )
            logger.warning(
                f"Resolution {tier.label} is enabled but has no video codec, "
                f"using {FALLBACK_VIDEO_CODEC} {FALLBACK_CODEC_PARAMS}"
            )
            codec, input_options, output_options = _build_fallback_video_options(global_config.thread_count)

        name = profile_name_for(tier, codec, options)
        video = CompiledProfile(
            kind=MediaKind.VIDEO,
            tier_id=tier.id,
            encoder_name=codec,
            profile_name=name,
            input_options=tuple(input_options),
            output_options=tuple(output_options),
        )
        audio = CompiledProfile(
            kind=MediaKind.AUDIO,
            tier_id=tier.id,
            encoder_name=audio_codec,
            profile_name=name,
            output_options=tuple(audio_output),
        )
        profiles.extend([video, audio])
        enabled.append(tier.id)
        _append_unique(video_encoders, codec)
        _append_unique(audio_encoders, audio_codec)

        logger.info(f"Generated arguments for {tier.label}: {join_arguments(build_argument_list(video, audio))}")

    priorities = [EncoderPriorityEntry(MediaKind.VIDEO, name, options.priority_score) for name in video_encoders]
    priorities += [EncoderPriorityEntry(MediaKind.AUDIO, name, options.priority_score) for name in audio_encoders]

    return ProfileTable(
        profiles=tuple(profiles),
        priorities=tuple(priorities),
        enabled_tiers=tuple(enabled),
        skipped_tiers=tuple(skipped),
        diagnostics=tuple(diagnostics),
    )


def build_argument_list(video: CompiledProfile, audio: CompiledProfile | None = None) -> list[str]:
    """
    Flatten a video/audio pair into a single argument list.

    Order: input options, video output options, audio codec selector (when
    not already inlined), audio output options.
    """
    args = list(video.input_options)
    if audio is not None:
        args.extend(audio.input_options)
    args.extend(video.output_options)
    if audio is not None:
        if AUDIO_CODEC_FLAG not in audio.output_options:
            args.extend([AUDIO_CODEC_FLAG, audio.encoder_name])
        args.extend(audio.output_options)
    return args
