"""
Core module for the combat engine.

This module contains constants, settings, logging, error handling, random
sources and shared utilities used throughout the package.
"""
