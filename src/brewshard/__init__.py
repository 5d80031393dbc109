"""brewshard: reverse-dependency test sharding simulator for Homebrew formulae."""

__version__ = "0.1.0"
