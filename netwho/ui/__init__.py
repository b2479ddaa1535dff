from .picker import Investigator, build_choices
