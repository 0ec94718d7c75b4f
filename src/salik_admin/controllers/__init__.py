from .research import ResearchCreateController, ResearchEditController, ResearchListController
from .students import StudentListController

__all__ = [
    "ResearchCreateController",
    "ResearchEditController",
    "ResearchListController",
    "StudentListController",
]
