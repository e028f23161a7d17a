"""turbokit -- pnpm/turbo workspace scaffolder with per-client members."""

__all__ = ["__version__"]

__version__ = "0.1.0"
