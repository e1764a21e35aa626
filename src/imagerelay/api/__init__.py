"""Image Relay - FastAPI HTTP layer.

Modules
-------
main
    Application factory, generation route and the ``main()`` CLI entry point.
http
    CORS/JSON response helpers and the size-limited body reader.
models
    Pydantic request/response models and request body parsing.
static_files
    Traversal-safe static file resolution and streaming.
"""
