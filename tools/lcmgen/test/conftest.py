"""Shared fixtures for lcmgen tests."""

import pytest
import sys
import os
import types

# Add the project root to sys.path so 'tools.lcmgen' is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "..", ".."))

from tools.lcmgen.parser import parse_schema
from tools.lcmgen.python_emitter import emit_python_module


GEOMETRY_LCM = """\
package geometry;

struct point_t
{
    int32_t x;
    int32_t y;
}

struct samples_t
{
    int32_t n;
    int32_t values[n];
}

/* A named polygon with a fixed 3x4 transform. */
struct polygon_t
{
    string  name;
    int16_t npoints;
    point_t points[npoints];
    double  transform[3][4];
    boolean closed;
    byte    flags[2];
}

struct grid_t
{
    int32_t rows;
    int32_t cols;
    float   cells[rows][cols];
    int8_t  mask[2][cols];
    string  labels[rows];
}
"""


GRAPH_LCM = """\
package graph;

// node_t and edge_t reference each other; tree_t references itself.
struct node_t
{
    int32_t nedges;
    edge_t  edges[nedges];
}

struct edge_t
{
    int64_t weight;
    int32_t ntargets;
    node_t  targets[ntargets];
}

struct tree_t
{
    int32_t nchildren;
    tree_t  children[nchildren];
}
"""


def load_module(schema, name="lcmtypes"):
    """Execute the generated Python for ``schema`` as a fresh module."""
    module = types.ModuleType(name)
    code = emit_python_module(schema, source=f"{name}.lcm")
    exec(compile(code, f"<{name}>", "exec"), module.__dict__)
    return module


@pytest.fixture
def geometry():
    """Parsed geometry schema."""
    return parse_schema(GEOMETRY_LCM)


@pytest.fixture
def graph():
    """Parsed schema with cyclic type references."""
    return parse_schema(GRAPH_LCM)


@pytest.fixture
def geometry_module(geometry):
    """Generated Python module for the geometry schema."""
    return load_module(geometry, "geometry_types")


@pytest.fixture
def graph_module(graph):
    """Generated Python module for the graph schema."""
    return load_module(graph, "graph_types")
