"""Built-in node kinds.

Importing this package registers every kind with the global registry.
"""

from conduit.executors import (  # noqa: F401
    branching,
    code,
    composite,
    data,
    documents,
    generative,
    io,
    memory,
    tools,
    web,
)
