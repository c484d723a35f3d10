"""Identifier types for the container/thread model.

One LiveChat container (``ContainerId``) holds one or more conversation threads
(``ThreadId``). Threads are the stored unit: messages and alerts always point at a
thread, while the container id is kept on the thread row as ``chat_id``.
"""

from typing import NewType

ContainerId = NewType("ContainerId", str)
ThreadId = NewType("ThreadId", str)
