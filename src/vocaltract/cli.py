"""
Command-line vocal-tract analysis of an audio file.

Loads a file, runs the batch feature extractor over it and prints the
per-frame feature document as JSON on stdout.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import librosa

from vocaltract.config import AnalysisConfig
from vocaltract.core.features import BatchFeatureExtractor
from vocaltract.io.exporter import FeatureExporter, FeatureMetadata

logger = logging.getLogger(__name__)


def analyze_file(
    audio_path: Path,
    config: AnalysisConfig,
    max_duration: Optional[float] = None,
    precision: int = 4,
    indent: Optional[int] = 2,
    resample: bool = False,
) -> str:
    """
    Analyze an audio file and return the feature document as JSON.

    Args:
        audio_path: Path to input audio file (wav, flac, ogg, ...).
        config: Analysis parameters. ``config.sample_rate`` is only used to
            resample the file when ``resample`` is set.
        max_duration: Maximum duration in seconds (None for the full file).
        precision: Decimal places in the output.
        indent: JSON indentation (None for a single line).
        resample: Resample to ``config.sample_rate`` instead of keeping the
            file's native rate.

    Returns:
        JSON text.
    """
    y, sr = librosa.load(
        audio_path,
        sr=config.sample_rate if resample else None,
        mono=True,
        duration=max_duration,
    )
    sr = int(sr)
    logger.info("Loaded %s: %d samples @ %d Hz", audio_path, len(y), sr)

    batch = BatchFeatureExtractor(
        sample_rate=sr,
        window_size=config.frame_size,
        hop_size=config.hop_size,
        lpc_order=config.lpc_order,
        pre_emphasis=config.pre_emphasis,
    )
    frames = batch.extract(y)
    logger.info("Extracted %d frames", len(frames))

    metadata = FeatureMetadata(
        sample_rate=sr,
        frame_size=batch.window_size,
        hop_size=batch.hop_size,
        lpc_order=config.lpc_order,
        n_frames=len(frames),
        duration=len(y) / float(sr) if sr else 0.0,
    )
    exporter = FeatureExporter(precision=precision)
    return exporter.to_json(frames, metadata, batch.frame_times(len(frames)), indent=indent)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Extract pitch, formants and vocal-tract areas from audio"
    )

    parser.add_argument(
        "audio",
        type=Path,
        help="Input audio file (wav, flac, ogg)",
    )

    parser.add_argument(
        "-r", "--sample-rate",
        type=int,
        default=None,
        help="Resample the file to this rate before analysis (default: native rate)",
    )

    parser.add_argument(
        "-w", "--frame-size",
        type=int,
        default=2048,
        help="Analysis frame size in samples (default: 2048)",
    )

    parser.add_argument(
        "--hop-size",
        type=int,
        default=512,
        help="Hop between frames in samples (default: 512)",
    )

    parser.add_argument(
        "-p", "--lpc-order",
        type=int,
        default=14,
        help="LPC order (default: 14)",
    )

    parser.add_argument(
        "--pre-emphasis",
        type=float,
        default=0.97,
        help="Pre-emphasis coefficient (default: 0.97)",
    )

    parser.add_argument(
        "-d", "--max-duration",
        type=float,
        default=None,
        help="Only analyze the first N seconds",
    )

    parser.add_argument(
        "--precision",
        type=int,
        default=4,
        help="Decimal places in the output (default: 4)",
    )

    parser.add_argument(
        "--compact",
        action="store_true",
        help="Print single-line JSON",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log progress and LPC diagnostics to stderr",
    )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if not args.audio.exists():
        print(f"Error: Audio file not found: {args.audio}", file=sys.stderr)
        return 1

    config = AnalysisConfig().updated(
        sample_rate=args.sample_rate,
        frame_size=args.frame_size,
        hop_size=args.hop_size,
        lpc_order=args.lpc_order,
        pre_emphasis=args.pre_emphasis,
    ).clamped()

    output = analyze_file(
        args.audio,
        config,
        max_duration=args.max_duration,
        precision=args.precision,
        indent=None if args.compact else 2,
        resample=args.sample_rate is not None,
    )
    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
