"""Command-line interface (``actionlane``)."""
