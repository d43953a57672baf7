"""Core infrastructure for diskplan: paths, theme and the base error."""
