"""Interactive plugin console for termkit."""
