"""RoomRender — FastAPI HTTP layer.

Modules
-------
main
    Application factory, route handlers, error mapping and the ``main()``
    CLI entry point.
models
    Pydantic response models.
"""
