"""
scenecast - entry point for python -m scenecast
"""

if __name__ == "__main__":
    import logging
    import signal

    # Writes to a closed pipe (e.g. `| head`) terminate quietly
    try:
        signal.signal(signal.SIGPIPE, signal.SIG_DFL)
    except (AttributeError, ValueError):
        pass
    logging.raiseExceptions = False

    from scenecast.cli import cli
    cli()
