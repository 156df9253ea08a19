"""Generate a short audition clip for every prebuilt voice.

Usage: python -m voxlate.scripts.generate_voice_samples [--output-dir soundcheck]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Dict, List

from ..config import get_settings
from ..core.gemini import GeminiClient
from ..services.speech import SpeechGenerator, VoiceSynthesizer
from ..services.voices import voice_options

LOGGER = logging.getLogger(__name__)

TEST_TEXT = "All is well"


async def generate_all(
    generator: SpeechGenerator,
    output_dir: Path,
    *,
    text: str = TEST_TEXT,
    delay_seconds: float = 2.0,
) -> List[Dict[str, object]]:
    voices = voice_options()
    output_dir.mkdir(parents=True, exist_ok=True)
    results: List[Dict[str, object]] = []
    for i, voice in enumerate(voices):
        target = output_dir / f"voice_sample_{voice}.wav"
        LOGGER.info(f"[samples] [{i + 1}/{len(voices)}] {voice}")
        try:
            await generator.generate_speech(text, voice, target)
            results.append({"voice": voice, "status": "success", "file": str(target), "error": None})
        except Exception as exc:
            LOGGER.error(f"[samples] ❌ {voice}: {exc}")
            results.append({"voice": voice, "status": "error", "file": None, "error": str(exc)})
        if i < len(voices) - 1 and delay_seconds > 0:
            await asyncio.sleep(delay_seconds)
    return results


def main(argv: List[str] | None = None) -> int:
    settings = get_settings()
    ap = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    ap.add_argument("--output-dir", type=Path, default=settings.soundcheck_dir)
    ap.add_argument("--text", default=TEST_TEXT)
    ap.add_argument("--delay", type=float, default=2.0, help="seconds to wait between voices")
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="[%(asctime)s] [%(levelname)s] %(message)s")
    client = GeminiClient.from_settings(settings)
    if not client.validate_config():
        LOGGER.error("[samples] Gemini is not configured, aborting")
        return 1

    generator = SpeechGenerator(VoiceSynthesizer(client, model=settings.gemini_tts_model))
    results = asyncio.run(generate_all(generator, args.output_dir, text=args.text, delay_seconds=args.delay))

    ok = sum(1 for r in results if r["status"] == "success")
    print("=" * 50)
    print(f"done: {ok} succeeded, {len(results) - ok} failed")
    for r in results:
        if r["status"] != "success":
            print(f"  {r['voice']}: {r['error']}")
    print("=" * 50)
    return 0 if ok == len(results) else 2


if __name__ == "__main__":
    raise SystemExit(main())
