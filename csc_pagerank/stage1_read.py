# stage1_read.py
#
# Project: CSC PageRank
#
# Description:
#   Stage 1 — Read a SNAP-style edge list and build the CSC adjacency
#   matrix (sequential) or its row partitions (parallel) in a single
#   forward pass.
#
#   File layout:
#       # Directed graph (each unordered pair of nodes is saved once): ...
#       # Some description line
#       # Nodes: 875713 Edges: 5105039
#       # FromNodeId    ToNodeId
#       0       11342
#       0       824020
#       ...
#   Lines 1, 2 and 4 are ignored; line 3 carries the node count (3rd
#   field) and the edge count (5th field). Edges must be sorted by source
#   node, which is what lets CSC be built without a sort step.
#
#   Source auto-detection:
#     - `gs://bucket/path` → download the blob with google-cloud-storage.
#     - anything else      → open as a local text file.
#
# References:
#   [1] SNAP edge-list format
#       https://snap.stanford.edu/data/index.html
#   [2] Downloading objects from GCS
#       https://cloud.google.com/storage/docs/downloading-objects#download-object-python

import io

import numpy as np
from tqdm import tqdm

from csc_pagerank.csc_matrix import CSCMatrix, GraphMetadata
from csc_pagerank.errors import FormatError
from csc_pagerank.partitioning import partition_bounds
from csc_pagerank.utils import print_stage, print_step, print_success, print_summary_box, Timer

HEADER_LINES = 4
GCS_PREFIX = "gs://"


# ===================================================================
# Sources
# ===================================================================

def _download_gcs_text(url):
    """Download a `gs://bucket/blob` object and return its text."""
    from google.api_core.exceptions import GoogleAPICallError
    from google.cloud import storage

    bucket_name, _, blob_name = url[len(GCS_PREFIX):].partition("/")
    if not bucket_name or not blob_name:
        raise OSError(f"Invalid GCS URL: {url}")

    print_step(f"Connecting to bucket: {bucket_name}")
    try:
        client = storage.Client()
        print_success("Authenticated client")
    except Exception:
        client = storage.Client.create_anonymous_client()
        print_success("Anonymous client (public endpoint)")

    try:
        with Timer("Download"):
            return client.bucket(bucket_name).blob(blob_name).download_as_text()
    except GoogleAPICallError as exc:
        raise OSError(f"Unable to read {url}: {exc}") from exc


def open_edge_stream(source):
    """
    Open an edge-list source for reading.

    Args:
        source (str): Local file path or `gs://bucket/blob` URL

    Returns:
        A text file object (context manager, iterable over lines)

    Raises:
        OSError: The source cannot be opened or downloaded
    """
    source = str(source)
    if source.startswith(GCS_PREFIX):
        print_step(f"Detected GCS object: {source}")
        return io.StringIO(_download_gcs_text(source))
    print_step(f"Detected local file: {source}")
    # Undecodable bytes become U+FFFD and then fail integer parsing.
    return open(source, "r", errors="replace")


# ===================================================================
# Parsing
# ===================================================================

def _parse_count(token, name, line):
    try:
        return int(token)
    except ValueError:
        raise FormatError(f"{name} {token!r} is not an integer", line=line) from None


def read_header(lines):
    """
    Consume the four header lines and return the declared counts.

    Args:
        lines (iterator[str]): Line iterator positioned at the file start

    Returns:
        tuple: (n, nnz), node count and edge count
    """
    header = []
    for _ in range(HEADER_LINES):
        line = next(lines, None)
        if line is None:
            raise FormatError(
                f"header truncated: expected {HEADER_LINES} lines, got {len(header)}",
                line=len(header) + 1,
            )
        header.append(line)

    fields = header[2].split()
    if len(fields) < 5:
        raise FormatError(f"expected 5 fields in counts line, got {len(fields)}", line=3)

    n = _parse_count(fields[2], "node count", 3)
    nnz = _parse_count(fields[4], "edge count", 3)
    if n < 1:
        raise FormatError(f"node count must be positive, got {n}", line=3)
    if nnz < 0:
        raise FormatError(f"edge count must be non-negative, got {nnz}", line=3)
    return n, nnz


def iter_edges(lines, n, first_line=HEADER_LINES + 1):
    """
    Yield (from, to) integer pairs, validating ids and source order.

    Blank lines are skipped. Every other line must hold exactly two
    integers in [0, n), with `from` never smaller than on the line before.
    """
    prev_from = 0
    for lineno, line in enumerate(lines, start=first_line):
        fields = line.split()
        if not fields:
            continue
        if len(fields) != 2:
            raise FormatError(f"expected 'from to' pair, got {line.strip()!r}", line=lineno)
        try:
            u, v = int(fields[0]), int(fields[1])
        except ValueError:
            raise FormatError(f"non-numeric node id in {line.strip()!r}", line=lineno) from None

        if not (0 <= u < n and 0 <= v < n):
            raise FormatError(f"edge ({u}, {v}) has a node id outside [0, {n})", line=lineno)
        if u < prev_from:
            raise FormatError(
                f"edges must be sorted by source node ({u} follows {prev_from})", line=lineno
            )
        prev_from = u
        yield u, v


# ===================================================================
# CSC construction
# ===================================================================

def _build(n, nnz, edges, bounds, progress=False):
    """
    One forward pass over a source-sorted edge stream.

    A cursor walks the columns. When an edge's source is ahead of the
    cursor, every column in between is closed by recording the current
    entry count of each partition as the next col_ptr value; a column
    closed with no entries is a null (dangling) column. The edge is then
    stored in the partition that owns its destination row.
    """
    width = bounds[0][1]
    parts = len(bounds)
    row_index = [[] for _ in range(parts)]
    col_ptr = [[0] for _ in range(parts)]
    out_degree = [0] * n
    null_columns = []

    def close_column(col, col_els):
        for k in range(parts):
            col_ptr[k].append(len(row_index[k]))
        if col_els == 0:
            null_columns.append(col)

    cursor, col_els, consumed = 0, 0, 0
    stream = tqdm(edges, total=nnz, desc="  Reading edges", unit="edge",
                  ncols=90, disable=not progress)
    for u, v in stream:
        if u < cursor or u >= n or not 0 <= v < n:
            raise FormatError(f"edge ({u}, {v}) is out of range or out of source order")
        while cursor != u:
            close_column(cursor, col_els)
            cursor += 1
            col_els = 0

        k, local = divmod(v, width)
        row_index[k].append(local)
        out_degree[u] += 1
        col_els += 1
        consumed += 1

    while cursor != n:
        close_column(cursor, col_els)
        cursor += 1
        col_els = 0

    if consumed != nnz:
        raise FormatError(f"header declares {nnz} edges but {consumed} were read")

    metadata = GraphMetadata(n, out_degree, null_columns)
    return [
        CSCMatrix(row_index[k], col_ptr[k], metadata, rows=rows, row_offset=offset)
        for k, (offset, rows) in enumerate(bounds)
    ]


def build_csc(n, nnz, edges, progress=False):
    """
    Build a single CSC matrix of width n from a parsed edge stream.

    Args:
        n (int): Node count
        nnz (int): Declared edge count
        edges (iterable): (from, to) pairs sorted by `from`
        progress (bool): Show a tqdm progress bar

    Returns:
        CSCMatrix
    """
    return _build(n, nnz, edges, [(0, n)], progress=progress)[0]


def build_partitioned_csc(n, nnz, edges, cores, progress=False):
    """
    Build `cores` row-partitioned CSC matrices from a parsed edge stream.

    Partition k owns destinations [k*w, k*w + rows_k), w = ceil(n/cores);
    an edge (u, v) is stored in partition v // w at local row v % w.
    Out-degree and null columns are computed once and shared.

    Returns:
        list[CSCMatrix]
    """
    return _build(n, nnz, edges, partition_bounds(n, cores), progress=progress)


def load_graph(source, cores=None, progress=False):
    """
    Load an edge-list file into CSC form.

    Args:
        source (str): Local path or `gs://bucket/blob` URL
        cores (int|None): None → one matrix; k → list of k row partitions
        progress (bool): Show a tqdm progress bar while reading edges

    Returns:
        CSCMatrix | list[CSCMatrix]

    Raises:
        OSError: The source cannot be opened
        FormatError: The file is malformed
        ValueError: `cores` cannot split the node range
    """
    print_stage("Load", "Build CSC adjacency matrix from edge list")

    with Timer("Total Stage 1"):
        with open_edge_stream(source) as f:
            lines = iter(f)
            n, nnz = read_header(lines)
            print_success(f"Header: {n} nodes, {nnz} edges")

            edges = iter_edges(lines, n)
            if cores is None:
                print_step("Building sequential CSC matrix...")
                matrices = [build_csc(n, nnz, edges, progress=progress)]
            else:
                # Validate the split before touching the edges.
                partition_bounds(n, cores)
                print_step(f"Building {cores} row partitions...")
                matrices = build_partitioned_csc(n, nnz, edges, cores, progress=progress)

        metadata = matrices[0].metadata
        print_summary_box("Stage 1 Summary", {
            "Source": str(source),
            "Nodes": n,
            "Edges": metadata.nnz,
            "Null columns": len(metadata.null_columns),
            "Partitions": len(matrices) if cores is not None else "sequential",
        })

    return matrices[0] if cores is None else matrices


# ===================================================================
# Writing / generation
# ===================================================================

def write_edge_list(path, n, edges, comment="Directed graph"):
    """
    Write edges in the format `load_graph` reads, sorted by source.

    Args:
        path (str): Output file
        n (int): Declared node count (may exceed the ids used)
        edges (iterable): (from, to) pairs
        comment (str): Text for the first header line
    """
    edges = sorted(edges, key=lambda e: e[0])
    with open(path, "w") as f:
        f.write(f"# {comment}\n")
        f.write("# Generated by csc_pagerank\n")
        f.write(f"# Nodes: {n} Edges: {len(edges)}\n")
        f.write("# FromNodeId\tToNodeId\n")
        for u, v in edges:
            f.write(f"{u}\t{v}\n")


def generate_random_edges(n, avg_degree=8.0, dangling_fraction=0.1, seed=None):
    """
    Random directed multigraph edges, sorted by source.

    Out-degrees are Poisson(avg_degree); a `dangling_fraction` share of
    nodes is forced to out-degree zero so null columns are exercised.

    Returns:
        list[tuple[int, int]]
    """
    rng = np.random.default_rng(seed)
    degrees = rng.poisson(avg_degree, size=n)
    degrees[rng.random(n) < dangling_fraction] = 0
    sources = np.repeat(np.arange(n), degrees)
    targets = rng.integers(0, n, size=len(sources))
    return list(zip(sources.tolist(), targets.tolist()))
