"""JSON web API for py-memsim.

This package provides a Flask application that exposes one simulation
over HTTP.  It is an **optional** extra — install with::

    pip install py-memsim[web]

The ``create_app`` factory in ``app.py`` creates (or wraps) a
simulation and serves its state and control surface as JSON.
"""
