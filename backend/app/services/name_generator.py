"""Agent name generator — readable adjective-animal names.

Names are derived from a SHA-256 digest of a seed, so the same seed always
yields the same name. ``generate_unique_name`` mixes in fresh entropy for
agents created on demand.
"""

import hashlib
import uuid

ADJECTIVES = [
    "amber", "bold", "brisk", "calm", "clever", "cosmic", "crisp", "daring",
    "eager", "fuzzy", "gentle", "golden", "happy", "humble", "jolly", "keen",
    "lively", "lucky", "mellow", "mighty", "nimble", "noble", "plucky", "proud",
    "quick", "quiet", "rapid", "rustic", "shiny", "silent", "snappy", "solar",
    "steady", "stormy", "sunny", "swift", "tidy", "turbo", "vivid", "witty",
]

ANIMALS = [
    "alpaca", "badger", "beaver", "bison", "cobra", "condor", "coyote", "crane",
    "dingo", "falcon", "ferret", "flamingo", "gecko", "heron", "ibis", "jackal",
    "koala", "lemur", "lynx", "marmot", "moose", "narwhal", "ocelot", "otter",
    "panda", "pelican", "penguin", "puffin", "quokka", "raven", "salmon", "seal",
    "sparrow", "tapir", "toucan", "walrus", "weasel", "wombat", "yak", "zebra",
]


def generate_name(seed: str) -> str:
    """Deterministically map a seed to an ``adjective-animal`` name."""
    digest = hashlib.sha256(seed.encode("utf-8")).digest()
    adjective = ADJECTIVES[int.from_bytes(digest[:4], "big") % len(ADJECTIVES)]
    animal = ANIMALS[int.from_bytes(digest[4:8], "big") % len(ANIMALS)]
    return f"{adjective}-{animal}"


def generate_unique_name(owner_id: str, agent_type: str) -> str:
    """Name for a freshly created agent. Every call draws new entropy."""
    return generate_name(f"{owner_id}:{agent_type}:{uuid.uuid4().hex}")
