"""Knowledge base: notes extracted from conversation turns."""
