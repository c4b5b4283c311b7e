"""
Cost estimation for script generation and narration.
"""

from .models import VideoScript

# Rough characters-per-token ratio for English prose
CHARS_PER_TOKEN = 4.0

DEFAULT_RATES: dict[str, float] = {
    "tts-1_per_mchar": 15.0,
    "tts-1-hd_per_mchar": 30.0,
    "gpt_in_per_mtok": 0.15,
    "gpt_out_per_mtok": 0.60,
    "prompt_tokens": 1500.0,
}


def estimate_costs(
    script: VideoScript,
    *,
    tts_model: str = "tts-1-hd",
    rates: dict[str, float] | None = None,
) -> dict[str, float | None]:
    """Estimate the OpenAI spend for one video."""
    rates = {**DEFAULT_RATES, **(rates or {})}
    tts_chars = sum(len(s.narration) for s in script.sections if s.narration.strip())

    tts_cost: float | None = None
    rate = rates.get(f"{tts_model}_per_mchar")
    if rate is not None:
        tts_cost = tts_chars / 1_000_000.0 * float(rate)

    tin = float(rates["prompt_tokens"])
    tout = (
        sum(len(s.narration) + len(s.heading) + len(s.visual_notes or "") for s in script.sections)
        / CHARS_PER_TOKEN
    )
    script_cost = (tin / 1_000_000.0) * float(rates["gpt_in_per_mtok"]) + (
        tout / 1_000_000.0
    ) * float(rates["gpt_out_per_mtok"])

    return {
        "tts_chars": tts_chars,
        "tts_cost": tts_cost,
        "script_cost": script_cost,
        "total": script_cost + (tts_cost or 0.0),
    }
