"""
Shared, cross-cutting code for the API.

`core/` should contain small building blocks that multiple features use
(DB wiring, query building, errors, settings, background tasks, mail).
Keep feature-specific SQL and business logic in the corresponding feature
package (e.g. `listings/`).
"""
