"""
Boundary layer: adapters for the relational store, object store,
embedding provider and document extraction.
"""
