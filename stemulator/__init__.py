# SPDX-License-Identifier: MIT
"""
Guided science-lab simulator package.

`stemulator.sim` hosts the headless population engine, `stemulator.core`
contains configuration, settings validation, lab descriptors and the
thread-safe backend, and `stemulator.gradio_app` wires everything into a
browser console.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
