"""TaxLens — Old vs New regime income tax comparison with AI-assisted extraction and advice."""
__version__ = "0.1.0"
