"""View model package for presentation-safe data shapes."""

from .card_vm import (
    AlternateVM,
    CardVM,
    RulingVM,
    SetRefVM,
    alternate_to_vm,
    card_to_vm,
    vm_to_json,
)

__all__ = [
    "AlternateVM",
    "CardVM",
    "RulingVM",
    "SetRefVM",
    "alternate_to_vm",
    "card_to_vm",
    "vm_to_json",
]
