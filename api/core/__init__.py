"""
Shared, cross-cutting code for the API.

`core/` should contain small building blocks that multiple features use
(settings, logging, replica DB wiring, the MediaWiki client, request
routing and deadlines). Keep feature-specific SQL and business logic in the
corresponding feature package (e.g. `reviewers/`).
"""
