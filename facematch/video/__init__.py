"""Camera, match loop, session orchestration and rendering."""
