"""python batch_run_wavs.py
  --folder "C:/Users/goku/Downloads/"
  --recursive
  --out_dir "C:/Users/iProg/Desktop/eq"
  --bass 3 --treble 1.5
  --limit 3
"""
from __future__ import annotations

import argparse
from pathlib import Path

from parametric_eq.audio_engine import EqualizerEngine
from parametric_eq.equalizer import Equalizer, add_band_arguments, gains_from_args
from parametric_eq.errors import EngineError
from parametric_eq.system_utils import setup_logging



def find_wavs(folder: Path, recursive: bool) -> list[Path]:
    """
    Returns a sorted list of .wav files inside folder.

    If recursive=True, searches subfolders too.
    """
    if recursive:
        wavs = folder.rglob("*.wav")
    else:
        wavs = folder.glob("*.wav")

    return sorted(p for p in wavs if p.is_file() and "_processed_" not in p.name)


def run_engine_on_file(engine: EqualizerEngine, wav_path: Path, gains: dict[str, float]) -> Path | None:
    """
    Applies the gains to one file.
    Returns the output path, or None when the file failed.
    """
    print(f"\n> Processing: {wav_path}")
    try:
        result = engine.apply_eq(wav_path, gains)
    except EngineError as exc:
        print(f"FAILED: {exc}")
        return None
    if not result.applied:
        print(f"FAILED (left unprocessed): {result.error}")
        return None
    print(f"  -> {result.output_path}")
    return result.output_path


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Batch EQ .wav files in a folder.")
    parser.add_argument("--folder", required=True, help="Folder containing .wav files.")
    parser.add_argument("--recursive", action="store_true", help="Search subfolders too.")
    parser.add_argument("--out_dir", help="Output folder for processed files.")
    parser.add_argument("--config", help="Path to the JSON settings file.")
    parser.add_argument("--limit", type=int, default=0, help="Optional max files to process (0 = no limit).")
    parser.add_argument("--log_level", default="WARNING")
    add_band_arguments(parser)
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    folder = Path(args.folder).expanduser().resolve()
    if not folder.exists() or not folder.is_dir():
        print(f"ERROR: Folder not found: {folder}")
        return 2

    wav_files = find_wavs(folder, recursive=args.recursive)

    if not wav_files:
        print(f"No .wav files found in: {folder}")
        return 0
    if args.limit and args.limit > 0:
        wav_files = wav_files[: args.limit]

    engine = Equalizer(config_path=args.config, output_dir=args.out_dir).engine
    gains = gains_from_args(args)

    print(f"Found {len(wav_files)} WAV files.")
    failures: list[Path] = []

    for wav_path in wav_files:
        if run_engine_on_file(engine, wav_path, gains) is None:
            failures.append(wav_path)

    print("\n=== Batch Summary ===")
    print(f"Total: {len(wav_files)}")
    print(f"Failed: {len(failures)}")

    if failures:
        print("\nFailed files:")
        for f in failures:
            print(f"- {f}")

        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
