"""Standalone invokers for the cleanup job."""
