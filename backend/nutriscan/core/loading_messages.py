import random
from typing import List, Optional

LOADING_MESSAGES: List[str] = [
    # Analysis
    "Nutri-Scanning... 🔍",
    "Analyzing ingredients... 🧪",
    "Decoding the food label... 🏷️",
    "Processing product details... 📝",
    "Extracting healthy insights... 🥗",
    "Reading between the ingredients... 🔬",
    "Making sense of the nutrients... 🧮",
    "Calculating nutritional values... 🔢",
    # Fun
    "Getting smart about your snack... 🍫",
    "Doing food math (yum + yum = nutrition)... ➗",
    "Food wisdom loading... 🦉",
    "Unleashing the power of science... ⚡",
    # Technical-sounding
    "Initializing nutrient analysis... 🚀",
    "Running ingredient algorithms... 💻",
    "Parsing product information... 📱",
    "Executing nutritional scan... 🔄",
    # Health
    "Calculating protein power... 💪",
    "Analyzing sugar levels... 🍯",
    "Evaluating dietary value... 🥗",
    "Scanning for superfoods... 🥑",
    # Food
    "Consulting the recipe books... 📚",
    "Investigating snack satisfaction... 🕊️",
    "Almost there, finalizing analysis... ✨",
    "Making healthy choices easier... 🎯",
    "Searching the Open Food Facts database... 🍎",
]

# Steps 1..EARLY_STEPS must not claim we're nearly done
EARLY_STEPS = 3
FINISHING_MARKER = "Almost there"


def pick_loading_message(step: int, rng: Optional[random.Random] = None) -> str:
    """
    Message for the `step`-th rotation of one client session.

    The caller owns the counter; nothing is kept between calls.
    """
    rng = rng or random
    pool = LOADING_MESSAGES
    if step <= EARLY_STEPS:
        pool = [m for m in LOADING_MESSAGES if FINISHING_MARKER not in m]
    return rng.choice(pool)
