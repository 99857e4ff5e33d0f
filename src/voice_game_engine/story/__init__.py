from .house import PASSWORD_SPELLINGS, STORY_ID, build_house_story, house_story_spec
from .scenes import inventory_sentence, narrate, scene

__all__ = [
    "PASSWORD_SPELLINGS",
    "STORY_ID",
    "build_house_story",
    "house_story_spec",
    "inventory_sentence",
    "narrate",
    "scene",
]
