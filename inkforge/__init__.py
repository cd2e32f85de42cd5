"""InkForge: thematic Lorcana deck building over semantic card retrieval."""
