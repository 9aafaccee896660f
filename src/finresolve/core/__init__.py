"""Shared plumbing: exceptions, configuration, events, logging, CLI."""
