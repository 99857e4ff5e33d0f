from __future__ import annotations

from xml.sax.saxutils import escape

from ..core.actions import add_item, capture_player_name, reset_progress, show, speak, speak_markup, stop_media
from ..core.config import SessionConfig
from ..core.graph import NarrativeGraph, NodeSpec, absolute, build_graph, child, composite, go, leaf, sibling
from ..core.guards import (
    Guard,
    entity_equals,
    entity_in,
    has_item,
    has_player_name,
    heard_utterance,
    intent_is,
    lacks_item,
    utterance_equals,
)
from ..core.types import EventType, GameState
from .scenes import narrate, scene

STORY_ID = "stanley_house"

# NLU vocabulary
APPROACH = "ApproachX"
MOVE = "MoveToX"
GO_TO_DOOR = "GoToDoorWithColorX"
TAKE_STICK = "TakeTheStick"
TAKE_KEY = "TakeTheKey"
TAKE_PAPER = "TakeThePaper"
USE_ITEM = "UseItemX"
EXIT_ROOM = "ExitTheRoom"
TRY_PASSWORD = "TryPasswordRequest"

NON_PICKUP_OBJECT = "NonPickupObject"
DIRECTION = "Direction"
DOOR_COLOR = "DoorColor"
USABLE_OBJECT = "UsableObject"

STICK = "a brown stick"
GREEN_KEY = "a green key"
GREY_KEY = "a grey key"
PAPER = "paper with the code 295233"

PASSWORD_SPELLINGS = ("295233", "295 233", "two nine five two three three")

GUIDE_VOICE = "en-US-JennyNeural"
LETTER_VOICE = "en-US-TonyNeural"
DETECTIVE_VOICE = "en-US-DavisNeural"


def asset(name: str) -> str:
    return f"assets/{name}"


def whisper(text: str, voice: str = DETECTIVE_VOICE, *, background: str | None = None) -> str:
    bg = f'<mstts:backgroundaudio src="{escape(background)}" volume="2.0" />' if background else ""
    return (
        '<speak xmlns="http://www.w3.org/2001/10/synthesis" xmlns:mstts="http://www.w3.org/2001/mstts" '
        f'version="1.0" xml:lang="en-US">{bg}<voice name="{voice}">'
        f'<mstts:express-as style="whispering">{text}</mstts:express-as></voice></speak>'
    )


def _name(state: GameState) -> str:
    return escape(state.player_name)


def moved(*directions: str) -> Guard:
    return intent_is(MOVE) & entity_in(DIRECTION, directions)


def door(color: str) -> Guard:
    return intent_is(GO_TO_DOOR) & entity_equals(DOOR_COLOR, color)


def approached(obj: str) -> Guard:
    return intent_is(APPROACH) & entity_equals(NON_PICKUP_OBJECT, obj)


def _start_nodes(config: SessionConfig) -> list[NodeSpec]:
    start_entry = [
        show(image=asset("edited1.png"), video=None, sound=asset("intro.mp3"), loop=False),
    ]
    if config.reset_progress_on_restart:
        start_entry.insert(0, reset_progress(config.initial_inventory))
    return [
        leaf("prepare", on={EventType.ASRTTS_READY: go(sibling("wait_to_start"))}),
        leaf("wait_to_start", *start_entry, on={EventType.CLICK: go(sibling("ask_player_name"))}),
        scene(
            "ask_player_name",
            prompt=[
                speak_markup(
                    whisper(
                        "Greetings Detective. I will be your guide in this investigation. What is your name?",
                        GUIDE_VOICE,
                        background=asset("radio.mp3"),
                    )
                )
            ],
            on_recognised=[capture_player_name()],
            routes=[go(sibling("name_confirm"), when=has_player_name())],
            inventory=False,
        ),
        scene(
            "name_confirm",
            prompt=[
                show(image=asset("edited2.png"), sound=asset("letter.mp3"), loop=True),
                speak_markup(
                    lambda state: whisper(
                        f"Detective {_name(state)}, I am Dr. Stanley from the research and development center. "
                        "Could you please come to my house for a visit? I have something very urgent! "
                        "Thanks! Stanley.",
                        LETTER_VOICE,
                    )
                ),
            ],
            routes=[go(sibling("first_entrance"), when=intent_is(MOVE))],
            inventory=False,
        ),
    ]


def _front_yard_nodes() -> list[NodeSpec]:
    back_to_entrance = go(absolute("first_entrance.no_input"), when=moved("back", "previous"))
    return [
        scene(
            "first_entrance",
            prompt=[
                show(image=asset("edited3.png"), sound=asset("theme.mp3"), loop=True),
                speak_markup(
                    whisper(
                        "I have arrived at Dr. Stanley's house. A cold breeze washes over my face... "
                        "And I can't help the feeling that I am being watched!"
                    )
                ),
            ],
            no_input=[speak(""), show(image=asset("edited3.png"))],
            routes=[
                go(sibling("approached_car"), when=approached("car") & lacks_item(STICK)),
                go(sibling("approached_car_no_item"), when=approached("car") & has_item(STICK)),
                go(sibling("approached_front_door"), when=approached("door")),
                go(absolute("backyard"), when=moved("right") & lacks_item(PAPER)),
                go(absolute("backyard_no_item"), when=moved("right") & has_item(PAPER)),
            ],
            explore=(
                "You meticulously explore around to detect suspicious items and clues. It looks like that car "
                "is worth investigating and the door requires an entrance code."
            ),
            hint=(
                'You can say "approach car" to approach the car. You can also approach the door or go right. '
                "You can additionally examine your inventory or ask to explore around!"
            ),
        ),
        scene(
            "approached_car",
            prompt=[
                show(image=asset("edited4.png")),
                speak_markup(whisper("I approached the car. It seems like there is important stuff around it.")),
            ],
            routes=[
                back_to_entrance,
                go(child("take_the_stick"), when=intent_is(TAKE_STICK) & lacks_item(STICK)),
            ],
            explore=(
                "It looks like a German car from the nineties. Not entirely practical to have in this day and age. "
                "Like a sign of an interest rather than poverty. Oh... And it looks like there is a brown stick "
                "next to the car."
            ),
            hint=(
                'You can take the items by saying it, or you can go back to the entrance by saying something like '
                '"go back". You can additionally examine your inventory or ask to explore around!'
            ),
            extra=[
                narrate(
                    "take_the_stick",
                    add_item(STICK),
                    speak(
                        "You take the stick with you. It looks like a long, sturdy stick. It might be useful "
                        "for reaching higher places you can't reach on your own."
                    ),
                    show(image=asset("edited5.png")),
                    then=absolute("first_entrance.no_input"),
                ),
            ],
        ),
        scene(
            "approached_car_no_item",
            prompt=[
                show(image=asset("edited5.png")),
                speak_markup(whisper("It seems I have done everything I can do here.")),
            ],
            routes=[back_to_entrance],
            explore=(
                "It looks like a German car from the nineties. Not entirely practical to have in this day and age. "
                "There is nothing left to do here."
            ),
            hint=(
                'You can go back to the entrance by saying something like "go back". '
                "You can additionally examine your inventory or ask to explore around!"
            ),
        ),
        scene(
            "approached_front_door",
            prompt=[
                show(image=asset("edited10.png")),
                speak("It might be a good idea to observe around the door."),
            ],
            routes=[
                go(sibling("try_password"), when=intent_is(TRY_PASSWORD)),
                back_to_entrance,
            ],
            explore="It seems like the door is locked by an entrance code... Hmm... It looks like a 6-digit code.",
            hint=(
                'You can try to enter the 6-digit password by saying something like "Enter the password!", '
                'or you can go back to the entrance by saying "go back".'
            ),
        ),
    ]


def _password_node(config: SessionConfig) -> NodeSpec:
    return scene(
        "try_password",
        prompt=[speak("Please say the password.")],
        no_input=[speak(config.password_noinput_prompt)],
        routes=[
            go(sibling("house_entrance"), when=utterance_equals(PASSWORD_SPELLINGS)),
            go(absolute("approached_front_door.no_input"), when=moved("back", "previous")),
        ],
        hint=(
            "You can try to enter the 6-digit password by saying the numbers, or you can go back to the door "
            'by saying "go back".'
        ),
        late_routes=[go(child("wrong_password"), when=heard_utterance())],
        extra=[
            narrate(
                "wrong_password",
                speak("The password is incorrect."),
                then=sibling("ask"),
            ),
        ],
    )


def _house_nodes() -> list[NodeSpec]:
    to_hall = absolute("house_entrance.no_input")
    return [
        scene(
            "house_entrance",
            prompt=[
                speak_markup(
                    lambda state: whisper(
                        "As the door beeps open, I enter the house. There is no voice besides my steps... "
                        f"Then someone loudly yelled {_name(state)}! My name! And I turned my back."
                    )
                ),
                show(image=asset("edited11.png")),
            ],
            routes=[
                go(absolute("first_entrance.no_input"), when=moved("previous")),
                go(absolute("first_entrance.no_input"), when=door("blue")),
                go(sibling("yellow_room"), when=door("yellow") & lacks_item(GREEN_KEY)),
                go(sibling("yellow_room_no_item"), when=door("yellow") & has_item(GREEN_KEY)),
                go(sibling("second_entrance_inside"), when=moved("back")),
                go(sibling("staircase"), when=moved("right")),
            ],
            explore=(
                "You take your time and explore around a little bit. You see a blue door. The blue door is the "
                "door you came from. Additionally, you can go to the yellow door. There seems to be a sour, awful "
                'smell coming from that room. You can also say "go back" to go to the second entrance of the '
                "house, or you can go to the stairs to the right."
            ),
            hint=(
                "You can go back to the entrance or you can explore around. You can go to the yellow door or "
                "the blue door. You can go to the stairs to the right."
            ),
        ),
        scene(
            "yellow_room",
            prompt=[
                show(image=asset("edited12.png")),
                speak_markup(whisper("I enter the yellow door to a small room... It is a... toilet.")),
            ],
            routes=[
                go(to_hall, when=moved("previous", "back")),
                go(to_hall, when=door("yellow")),
                go(to_hall, when=intent_is(EXIT_ROOM)),
                go(child("take_the_key"), when=intent_is(TAKE_KEY) & lacks_item(GREEN_KEY)),
            ],
            explore=(
                "The room's light is dim. And the room smells good for a toilet. You can see a door with a yellow "
                "color. And... there seems to be a green key on top of the toilet paper. It seems to be useful. "
                "Although... Why is it there?"
            ),
            hint=(
                'You can go back to the entrance or you can explore around. Say something like "Take the Key" '
                "to take the item."
            ),
            extra=[
                narrate(
                    "take_the_key",
                    add_item(GREEN_KEY),
                    speak("You find a green key. You take the key with you."),
                    show(image=asset("edited13.png")),
                    then=absolute("yellow_room_no_item"),
                ),
            ],
        ),
        scene(
            "yellow_room_no_item",
            prompt=[
                show(image=asset("edited13.png")),
                speak_markup(whisper("I have taken the green key. There seems nothing left to do here.")),
            ],
            routes=[
                go(to_hall, when=moved("previous", "back")),
                go(to_hall, when=door("yellow")),
                go(to_hall, when=intent_is(EXIT_ROOM)),
            ],
            explore=(
                "The room's light is dim. You can see a door with a yellow color. There is nothing left to do here."
            ),
            hint="You can go back to the entrance or you can explore around. There is nothing left to do here.",
        ),
        scene(
            "second_entrance_inside",
            prompt=[
                show(image=asset("edited14.png")),
                speak_markup(whisper("I am now in the second entrance of the house. There is a strange odor here.")),
            ],
            routes=[
                go(to_hall, when=moved("previous", "back", "right")),
                go(sibling("white_door_locked"), when=door("white")),
                go(sibling("green_room"), when=door("green") & has_item(GREEN_KEY)),
                go(child("green_room_locked"), when=door("green") & lacks_item(GREEN_KEY)),
            ],
            explore=(
                "There is a green door and a white door. The white door is locked. You can go back to the "
                "entrance or you can explore around."
            ),
            hint=(
                "You can go back to the entrance or you can explore around. There is a green door and a white "
                "door. The white door seems to be locked."
            ),
            extra=[
                narrate(
                    "green_room_locked",
                    speak("The green door is locked. It seems you need a key to unlock it."),
                    then=sibling("no_input"),
                ),
            ],
        ),
        narrate(
            "white_door_locked",
            speak(
                "The white door is locked. And the lock is so rusty as if it hasn't been used since forever. "
                "You are sure you cannot force open this one."
            ),
            then=absolute("second_entrance_inside.no_input"),
        ),
    ]


def _upstairs_nodes() -> list[NodeSpec]:
    to_second_entrance = absolute("second_entrance_inside")
    return [
        scene(
            "green_room",
            prompt=[
                show(image=asset("edited15.png")),
                speak_markup(whisper("I am inside now...")),
            ],
            routes=[
                go(to_second_entrance, when=moved("previous", "back", "right")),
                go(to_second_entrance, when=door("green")),
                go(to_second_entrance, when=intent_is(EXIT_ROOM)),
                go(sibling("approached_flowers"), when=intent_is(APPROACH) & lacks_item(GREY_KEY)),
                go(child("approached_flowers_invalid"), when=intent_is(APPROACH) & has_item(GREY_KEY)),
            ],
            explore=(
                "The room is dimly lit and the furniture is new. There are numerous decorations. There is a "
                "glistening item next to the flowers in the vase that catches your eye."
            ),
            hint=(
                "There is a vase with flowers that you can approach. You can go back to the entrance or you can "
                "explore around. You can examine your inventory."
            ),
            extra=[
                narrate(
                    "approached_flowers_invalid",
                    speak("You have already taken the key. You see nothing else useful near the vase."),
                    then=sibling("no_input"),
                ),
            ],
        ),
        scene(
            "approached_flowers",
            prompt=[show(image=asset("edited16.png")), speak("")],
            routes=[
                go(absolute("green_room.no_input"), when=moved("back", "previous")),
                go(child("take_the_key"), when=intent_is(TAKE_KEY) & lacks_item(GREY_KEY)),
            ],
            explore=(
                "It looks like a vase of flowers. The flowers are lively and well attended. And there seems to be "
                "a grey key on the vase. It seems to be useful. Who may have put it there?"
            ),
            hint=(
                'You can take the items by saying it, or you can go back by saying something like "go back". '
                "You can additionally examine your inventory or ask to explore around!"
            ),
            extra=[
                narrate(
                    "take_the_key",
                    add_item(GREY_KEY),
                    speak("You find a grey key. You take the key with you."),
                    show(image=asset("edited17.png")),
                    then=absolute("green_room"),
                ),
            ],
        ),
        scene(
            "staircase",
            prompt=[
                show(image=asset("edited18.png")),
                speak_markup(
                    whisper(
                        "This floor is much colder compared to the ground floor! Hmm... This grey door looks "
                        "important, and requires its key to enter. And... The staircase looks totally blocked "
                        "with clutter. I can't go there."
                    )
                ),
            ],
            routes=[
                go(sibling("grey_door"), when=door("grey") & has_item(GREY_KEY)),
                go(sibling("grey_door_failed"), when=door("grey") & lacks_item(GREY_KEY)),
                go(absolute("house_entrance.no_input"), when=moved("previous", "back", "left")),
            ],
            explore=(
                "It feels like the grey door is important. If I don't have the grey key, I may find it if I look "
                "around more."
            ),
            hint="You can try to open the grey door or go back to the entrance.",
        ),
        narrate(
            "grey_door_failed",
            speak("The grey door is locked. I need the key."),
            show(image=asset("edited18.png")),
            then=absolute("staircase"),
        ),
        leaf(
            "grey_door",
            stop_media(),
            show(image=None, video=asset("final.mp4")),
            on={EventType.CLICK: go(sibling("wait_to_start"))},
        ),
    ]


def _backyard_nodes() -> list[NodeSpec]:
    to_front = go(absolute("first_entrance.no_input"), when=moved("left", "back"))
    paper_steps = [
        ("Paper1.png", "You took the stick from your inventory."),
        ("paper2.png", "Used it to poke the paper plane stuck in the tree."),
        ("paper3.png", "It falls."),
        ("paper4.png", "You pick it up."),
        (
            "paper5.png",
            "When you open it with haste, you see that someone wrote help and a 6 digit code below. "
            "It is 2 9 5 2 3 3. You can look at it again by examining your inventory if you don't remember.",
        ),
    ]
    steps: list[NodeSpec] = []
    for index, (image, line) in enumerate(paper_steps, start=1):
        entry = [show(image=asset(image)), speak(line)]
        if index == 1:
            entry.insert(0, add_item(PAPER))
        then = sibling(f"step_{index + 1}") if index < len(paper_steps) else absolute("backyard_no_item.no_input")
        steps.append(narrate(f"step_{index}", *entry, then=then))

    return [
        composite("paper_pickup", steps, initial="step_1"),
        scene(
            "backyard",
            prompt=[show(image=asset("edited8.png")), speak("You find yourself in the backyard.")],
            routes=[
                go(
                    sibling("paper_pickup"),
                    when=intent_is(USE_ITEM) & entity_equals(USABLE_OBJECT, "stick") & has_item(STICK),
                ),
                go(sibling("paper_pickup"), when=intent_is(TAKE_PAPER) & has_item(STICK)),
                to_front,
                go(child("paper_pickup_fail"), when=intent_is(TAKE_PAPER) & lacks_item(STICK)),
            ],
            explore=(
                "You see that there is some kind of paper plane stuck in the tree which may have come from "
                "the window above."
            ),
            hint="You can use an item that you think is useful, or you can go left to go back to the front entrance.",
            extra=[
                narrate(
                    "paper_pickup_fail",
                    speak(
                        "The paper seems to be interesting but totally out of your reach. You need to find a "
                        "way to take it from there."
                    ),
                    then=sibling("no_input"),
                ),
            ],
        ),
        scene(
            "backyard_no_item",
            prompt=[
                show(image=asset("edited9.png")),
                speak("You are back at the backyard. There is nothing left to do here."),
            ],
            no_input=[speak(""), show(image=asset("edited9.png"))],
            routes=[to_front],
            explore="You are back at the backyard. There is nothing left to do here. You can go back.",
            hint="You can say go back.",
        ),
    ]


def house_story_spec(config: SessionConfig | None = None) -> NodeSpec:
    config = config or SessionConfig()
    return composite(
        STORY_ID,
        [
            *_start_nodes(config),
            *_front_yard_nodes(),
            _password_node(config),
            *_house_nodes(),
            *_upstairs_nodes(),
            *_backyard_nodes(),
        ],
        initial="prepare",
    )


def build_house_story(config: SessionConfig | None = None) -> NarrativeGraph:
    config = config or SessionConfig()
    return build_graph(house_story_spec(config), require_listen_fallbacks=config.require_listen_fallbacks)
