"""CLI script: analyze an audio file and optionally export STL meshes.

Usage:
    # All analysis kinds, JSON summary to stdout:
    python scripts/analyze_audio.py track.wav

    # Only beats and tempo, first 30 seconds:
    python scripts/analyze_audio.py track.wav --kind beats --kind tempo --duration 30

    # Also write <stem>_<kind>_3d_model.stl files:
    python scripts/analyze_audio.py track.wav --stl out/

    # Full result records instead of summaries:
    python scripts/analyze_audio.py track.wav --kind chroma --full

Output:
    One JSON object keyed by kind. A failed kind maps to null.
    Exit status 1 when the file cannot be loaded or any kind failed.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.analysis.types import AnalysisKind, AnalysisResult  # noqa: E402
from core.analysis.types import MissingInputError  # noqa: E402
from core.mesh.types import MeshValidationError  # noqa: E402
from ingestion.analysis_engine import AnalysisEngine  # noqa: E402
from ingestion.stl_export import export_result_stl  # noqa: E402

logger = logging.getLogger(__name__)

KIND_CHOICES = [kind.value for kind in AnalysisKind]


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Extract audio features and optionally export ring meshes as STL."
    )
    parser.add_argument("file", type=Path, help="Audio file (wav, mp3, flac, ...).")
    parser.add_argument(
        "--kind",
        action="append",
        choices=KIND_CHOICES,
        default=None,
        help="Analysis kind to run; repeat for several. Default: all.",
    )
    parser.add_argument(
        "--stl",
        type=Path,
        default=None,
        metavar="OUT_DIR",
        help="Write one STL mesh per successful kind into OUT_DIR.",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        metavar="S",
        help="Only analyze the first S seconds.",
    )
    parser.add_argument(
        "--full",
        action="store_true",
        default=False,
        help="Print complete result records instead of summaries.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Debug logging.",
    )
    return parser.parse_args(argv)


def summarize_result(result: AnalysisResult) -> dict[str, Any]:
    """Headline values of a result, small enough to read in a terminal."""
    summary: dict[str, Any] = {
        "type": result.type,
        "duration": round(result.duration, 3),
        "frames": result.n_frames,
        "window_size": result.window_size,
        "hop_size": result.hop_size,
    }
    kind = result.kind
    if kind is AnalysisKind.BASIC:
        summary["max_amplitude"] = result.max_amplitude
        summary["silent_regions"] = len(result.silent_regions)
        summary["statistics"] = result.statistics.as_dict()
    elif kind is AnalysisKind.CHROMA:
        summary["dominant_note"] = result.dominant_note
        summary["dominant_note_strength"] = result.dominant_note_strength
        summary["key_changes"] = len(result.key_changes)
    elif kind is AnalysisKind.FREQUENCY:
        summary["dominant_band"] = result.dominant_band
        summary["spectral_centroid"] = result.spectral_centroid
        summary["relative_balance"] = result.balance.relative
    elif kind is AnalysisKind.SPECTRAL:
        summary["profile"] = result.profile.as_dict()
        summary["events"] = len(result.events)
    elif kind is AnalysisKind.BEATS:
        summary["tempo"] = result.tempo
        summary["beats"] = len(result.beats)
        summary["average_beat_interval"] = result.average_beat_interval
    elif kind is AnalysisKind.TEMPO:
        summary["tempo"] = result.tempo_analysis.estimate.as_dict()
        summary["category"] = result.profile.category
        summary["tempo_changes"] = len(result.tempo_changes)
    elif kind is AnalysisKind.SPECTROGRAM:
        summary["dimensions"] = result.dimensions.as_dict()
        summary["statistics"] = result.statistics.as_dict()
    return summary


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    engine = AnalysisEngine()
    try:
        engine.load_file(args.file, duration=args.duration)
    except (FileNotFoundError, ValueError, RuntimeError) as exc:
        logger.error("Cannot load %s: %s", args.file, exc)
        return 1

    kinds = args.kind or KIND_CHOICES
    results = engine.analyze_many(kinds)

    output: dict[str, Any] = {}
    failed = False
    for kind, result in results.items():
        if result is None:
            output[kind.value] = None
            failed = True
            continue
        output[kind.value] = result.as_dict() if args.full else summarize_result(result)
        if args.stl is not None:
            try:
                path = export_result_stl(result, args.stl, file_stem=args.file.stem)
            except (MissingInputError, MeshValidationError) as exc:
                logger.error("No STL for %s: %s", kind.value, exc)
                failed = True
            else:
                output[kind.value]["stl"] = str(path)

    print(json.dumps(output, indent=2))
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
