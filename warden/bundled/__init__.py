"""Bundled implementations of the Warden interfaces."""
