"""Service layer: league rules, rankings and export."""
