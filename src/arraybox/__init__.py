# pyright: reportUnusedImport=false
from arraybox.access import Mode
from arraybox.container import OrderedContainer
from arraybox.errors import (
    ArrayBoxError,
    InvalidInputError,
    MalformedSerializedStateError,
    ProtectedNameError,
    StaleHandleError,
    StrategyRegistrationError,
    UnknownStrategyError,
)
from arraybox.handle import SlotHandle
from arraybox.iteration import IterationStrategy, iteration_strategy, register_strategy
from arraybox.serialization import json_default, load_state, save_state
from arraybox.settings import bind_settings, bind_settings_file, get_settings
from arraybox.sorting import SortFlag
