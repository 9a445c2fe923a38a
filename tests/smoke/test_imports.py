def test_import_runtime_memory():
    from engram.runtime.memory import (  # noqa: F401
        ConsolidationEngine,
        Distiller,
        LocalMemoryStore,
        MMRRetriever,
        PatternRegistry,
        ReasoningBank,
        TrajectoryJudge,
        TrajectoryStore,
    )


def test_import_graph_and_config():
    from engram.config import MemoryGraphConfig, ReasoningBankConfig  # noqa: F401
    from engram.graph import InMemoryBackend, MemoryGraph  # noqa: F401
