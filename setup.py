"""
Setup file.
"""

from setuptools import setup

KEYWORDS = "subprocess process stdout stderr capture"


if __name__ == "__main__":
    setup(keywords=KEYWORDS)
