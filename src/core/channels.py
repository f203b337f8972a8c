from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class Channel:
    """
    Declarative channel definition.
    """
    name: str
    terms: Tuple[str, ...] = field(default_factory=tuple)
    technical: bool = False


SYSTEM_DESIGN = Channel(
    name="system-design",
    terms=(
        "scalability", "availability", "consistency", "partition", "latency",
        "throughput", "load balancer", "caching", "database", "microservices",
    ),
    technical=True,
)

DEVOPS = Channel(
    name="devops",
    terms=(
        "ci/cd", "kubernetes", "docker", "terraform", "ansible", "monitoring",
        "deployment", "pipeline", "infrastructure",
    ),
    technical=True,
)

FRONTEND = Channel(
    name="frontend",
    terms=(
        "react", "vue", "angular", "css", "javascript", "dom", "component",
        "state", "rendering", "accessibility",
    ),
    technical=True,
)

BACKEND = Channel(
    name="backend",
    terms=(
        "api", "rest", "graphql", "database", "authentication",
        "authorization", "middleware", "orm",
    ),
    technical=True,
)

DATA_ENGINEERING = Channel(
    name="data-engineering",
    terms=("etl", "pipeline", "spark", "kafka", "warehouse", "lake", "batch", "streaming"),
    technical=True,
)

ML_AI = Channel(
    name="ml-ai",
    terms=(
        "model", "training", "inference", "neural", "transformer", "embedding",
        "fine-tuning", "llm",
    ),
)


ALL_CHANNELS = {
    channel.name: channel
    for channel in (SYSTEM_DESIGN, DEVOPS, FRONTEND, BACKEND, DATA_ENGINEERING, ML_AI)
}


def get_channel(name: Optional[str]) -> Optional[Channel]:
    if not name:
        return None
    return ALL_CHANNELS.get(name)
