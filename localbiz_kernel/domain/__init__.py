"""Pure domain core: money, numbering, lifecycle.  Zero I/O."""
