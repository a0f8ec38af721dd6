"""Test package for the Chemistry Trainer.

Core engines are driven with a fake clock so every run is deterministic for
a given seed.  The pygame smoke tests use the SDL dummy drivers to avoid
opening real windows.  To run these tests, execute ``pytest`` from the
project root.
"""
