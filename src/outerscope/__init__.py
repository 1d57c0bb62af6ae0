"""
outerscope - Hint indexes for JavaScript documents

Parses in-progress JavaScript with line-blanking damage repair and indexes
identifiers, properties, literals, property associations and JSLint globals
by source offset.
"""

__version__ = "0.1.0"
__author__ = "outerscope contributors"

from outerscope.parser import analyze, Analyzer
