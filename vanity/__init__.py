# flake8: noqa
"""
Package listing site that serves go-import meta tags for vanity import paths.

Modules:
    config:   JSON configuration loading and validation.
    templates:HTML rendering helpers for the list, package and error pages.
    main:     FastAPI application wiring routes to the loaded config.
    cli:      ``vanity-pages`` command that runs the app under uvicorn.
"""
