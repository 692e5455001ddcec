"""
Quiet loading of the audio and speech libraries.

PortAudio, ALSA and gRPC print diagnostics straight to stderr while they are
imported or probe devices. These helpers keep that noise out of the terminal
the wizard is talking in.
"""
import functools
import importlib
import os
import sys
import warnings

# Keep PortAudio from trying to spawn a JACK server when probing devices
os.environ.setdefault("JACK_NO_START_SERVER", "1")

# Suppress Google Cloud gRPC chatter
os.environ.setdefault("GRPC_VERBOSITY", "ERROR")
os.environ.setdefault("GLOG_minloglevel", "2")


def import_quietly(func):
    """
    Run ``func`` with Python-level stderr and warnings silenced.

    Returns whatever ``func`` returns; exceptions propagate unchanged.
    """
    original_stderr = sys.stderr
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            with open(os.devnull, 'w') as devnull:
                sys.stderr = devnull
                return func()
    finally:
        sys.stderr = original_stderr


def load_module_quietly(name: str):
    """
    Import an optional library by dotted name without its import-time noise.

    Raises:
        ImportError: The library is not installed
    """
    return import_quietly(lambda: importlib.import_module(name))


def with_suppressed_audio_warnings(func):
    """
    Decorator that silences native (C level) stderr while ``func`` runs.

    PortAudio writes ALSA/JACK probing errors to file descriptor 2, which a
    ``sys.stderr`` swap cannot catch, so the descriptor itself is redirected.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            saved_fd = os.dup(2)
            null_fd = os.open(os.devnull, os.O_WRONLY)
            os.dup2(null_fd, 2)
            os.close(null_fd)
        except OSError:
            saved_fd = None

        try:
            return func(*args, **kwargs)
        finally:
            if saved_fd is not None:
                os.dup2(saved_fd, 2)
                os.close(saved_fd)

    return wrapper
