"""Domain layer - field model, configuration and abstractions.

This layer contains:
- fields: the form node model (fields, affordances, field pairs)
- document: the host form document (focus, event dispatch, attribute watching)
- config: BindingConfig, the immutable per-widget configuration
- protocols: interfaces for resolvers and suggestion lists
- types: shared value types (Row, IdentifierValue helpers, BinderState)
- events: domain events and event bus
- exceptions: domain-specific exceptions

The domain layer has NO dependencies on application, infrastructure, or presentation layers.
"""
