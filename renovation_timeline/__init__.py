"""Renovation schedule timeline: layout engine and PyQt6 viewer."""
