"""
Flowbridge Modules

One package per concern. Each exposes its public names from __init__ and
keeps the rest private; main.py wires them together and nothing else
reaches across module boundaries.
"""
