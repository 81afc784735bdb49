"""
Parametric EQ
-------------
Entry point for the five-band equalizer.

Usage:
  python eq_master.py apply --in "input.wav" --bass 4 --treble -2
  python eq_master.py cleanup --hours 24
  python eq_master.py bands
"""

from parametric_eq.equalizer import main


if __name__ == "__main__":
    raise SystemExit(main())
