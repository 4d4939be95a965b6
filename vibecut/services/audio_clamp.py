import logging

from vibecut.schemas.composition import CompositionData

logger = logging.getLogger(__name__)


def clamp_audios(composition: CompositionData) -> CompositionData:
    """Shorten audio tracks that run past the end of the composition.

    A track with ``delay + duration`` beyond the total page duration gets
    ``duration = max(0, total - delay)``. Tracks are never dropped and never
    lengthened when the timeline grows again.
    """
    total = composition.total_duration_ms
    clamped = []
    changed = False
    for audio in composition.audios:
        if audio.delay + audio.duration > total:
            new_duration = max(0, total - audio.delay)
            logger.info(
                f"Clamped audio {audio.id} duration {audio.duration}ms -> {new_duration}ms "
                f"(timeline is {total}ms)"
            )
            audio = audio.model_copy(update={"duration": new_duration})
            changed = True
        clamped.append(audio)

    if not changed:
        return composition
    return composition.model_copy(update={"audios": clamped})
