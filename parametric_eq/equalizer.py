from __future__ import annotations

import argparse
import logging
from pathlib import Path

from .audio_engine import EqualizerConfig, EqualizerEngine
from .bands import BAND_INFO, BAND_ORDER, BANDS
from .errors import EngineError
from .system_utils import ConfigManager, setup_logging

LOG = logging.getLogger(__name__)


class Equalizer:
    """Wires the JSON settings file to an engine instance."""

    def __init__(self, config_path: str | None = None, output_dir: str | None = None):
        self.config_manager = ConfigManager(config_path=config_path)
        config = EqualizerConfig()
        self.config_manager.apply_to(config)
        if output_dir:
            config.output_dir = output_dir
        self.engine = EqualizerEngine(config)


def add_band_arguments(parser: argparse.ArgumentParser) -> None:
    for name in BAND_ORDER:
        parser.add_argument(
            f"--{name}",
            type=float,
            default=None,
            help=f"{BAND_INFO[name]['label']} gain in dB.",
        )


def gains_from_args(args: argparse.Namespace) -> dict[str, float]:
    return {name: getattr(args, name) for name in BAND_ORDER if getattr(args, name) is not None}


def build_cli() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Five-band parametric EQ for 16-bit PCM WAV files")
    parser.add_argument("--config", help="Path to the JSON settings file.")
    parser.add_argument("--out_dir", help="Override the output directory.")
    parser.add_argument("--log_level", default="INFO", help="DEBUG, INFO, WARNING, ...")
    parser.add_argument("--log_file", help="Also write logs to this file.")
    sub = parser.add_subparsers(dest="command", required=True)

    apply = sub.add_parser("apply", help="Apply band gains to a WAV file.")
    apply.add_argument("--in", dest="inp", required=True, help="Input WAV (16-bit, 44.1 kHz, stereo).")
    apply.add_argument("--fallback", action="store_true", help="Return the input path instead of failing.")
    add_band_arguments(apply)

    cleanup = sub.add_parser("cleanup", help="Delete processed files older than --hours.")
    cleanup.add_argument("--hours", type=float, default=None, help="Age threshold in hours.")

    sub.add_parser("bands", help="List the EQ bands.")
    return parser


def _print_stats(stats: dict) -> None:
    rows = [
        ("Remaining temp files", str(stats["temp_files_count"])),
        ("Total temp size", f"{stats['temp_files_size_mb']} MB"),
        ("Temp directory", stats["temp_directory"]),
    ]
    width = max(len(label) for label, _ in rows)
    print(f"{'Metric'.ljust(width)} | Value")
    for label, value in rows:
        print(f"{label.ljust(width)} | {value}")


def main(argv: list[str] | None = None) -> int:
    args = build_cli().parse_args(argv)
    setup_logging(args.log_level, args.log_file)
    eq = Equalizer(config_path=args.config, output_dir=args.out_dir)
    engine = eq.engine

    if args.command == "bands":
        for name in BAND_ORDER:
            band = BANDS[name]
            shape = "shelf" if band.is_shelf else "peaking"
            print(f"{name:<9} {band.center_frequency_hz:>7.0f} Hz  Q {band.q_factor:.1f}  {shape:<7}  {BAND_INFO[name]['description']}")
        return 0

    if args.command == "cleanup":
        hours = args.hours if args.hours is not None else engine.config.retention_hours
        print(f"Cleaning up EQ temporary files older than {hours:g} hours...")
        cleaned = engine.cleanup_temp_files(hours)
        if cleaned > 0:
            print(f"Successfully cleaned up {cleaned} temporary EQ files.")
        else:
            print("No temporary EQ files found to clean up.")
        _print_stats(engine.processing_stats())
        return 0

    try:
        result = engine.apply_eq(Path(args.inp), gains_from_args(args), fallback=args.fallback or None)
    except EngineError as exc:
        LOG.error("EQ failed: %s", exc)
        return 1
    print(f"Output: {result.output_path}")
    print(f"Applied: {'yes' if result.applied else 'no'} | Bands: {', '.join(result.bands) or 'none'}")
    return 0 if result.applied else 1
