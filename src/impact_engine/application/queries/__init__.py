"""Read-side analyses over the Graph Access Port."""
