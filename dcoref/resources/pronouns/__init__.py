from .pronouns import *
