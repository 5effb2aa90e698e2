"""Mirror every package of one NuGet V3 registry into another."""

__version__ = "0.1.0"
