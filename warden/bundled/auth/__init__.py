"""Bundled authentication backends: hashers, token signers, memory stores."""
