"""
Hierarchical container access.

The walker, writer and validator only talk to the container through the
:class:`HierarchicalStore` protocol. :class:`H5Store` implements it on top
of h5py.
"""

from __future__ import annotations

import logging
import posixpath
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional, Protocol, Sequence, Union, runtime_checkable

import h5py
import numpy as np

from .errors import MissingGroupError

logger = logging.getLogger(__name__)

_text_dtype = h5py.string_dtype(encoding="utf-8", length=None)


@runtime_checkable
class HierarchicalStore(Protocol):
    """
    Protocol for the container engine.

    Paths are absolute, ``/``-separated group or dataset paths. Load
    operations return None when the object is absent or has the wrong type.
    """

    def close(self) -> None: ...

    def open_group(self, path: str) -> Any: ...

    def close_group(self, handle: Any) -> None: ...

    def group(self, path: str) -> Any: ...

    def group_exists(self, path: str) -> bool: ...

    def create_group(self, path: str) -> None: ...

    def list_group_names(self, path: str) -> list[str]: ...

    def list_group_member_names(self, path: str) -> list[str]: ...

    def dataset_exists(self, path: str) -> bool: ...

    def load_text_dataset(self, path: str) -> Optional[list[str]]: ...

    def load_numeric_dataset(self, path: str) -> Optional[list[float]]: ...

    def load_text_attribute(self, path: str, name: str) -> Optional[list[str]]: ...

    def load_numeric_attribute(self, path: str, name: str) -> Optional[list[float]]: ...

    def write_text_dataset(
        self, path: str, value: Union[str, Sequence[str]], chunked: bool = False
    ) -> None: ...

    def write_numeric_dataset(self, path: str, values: Any) -> None: ...

    def write_attribute(self, path: str, name: str, value: Any) -> None: ...


def _as_text_list(value: Any) -> Optional[list[str]]:
    """Convert an h5py attribute value to a list of str, None if not UTF-8 text."""
    try:
        return _decode_text(value)
    except UnicodeDecodeError as e:
        logger.debug(f"Attribute value is not UTF-8: {e}")
        return None


def _decode_text(value: Any) -> Optional[list[str]]:
    if isinstance(value, bytes):
        return [value.decode("utf-8")]
    if isinstance(value, str):
        return [value]
    if isinstance(value, np.ndarray) and value.dtype.kind in "OSU":
        items = []
        for item in value.ravel():
            if isinstance(item, bytes):
                items.append(item.decode("utf-8"))
            elif isinstance(item, str):
                items.append(item)
            else:
                return None
        return items
    return None


class H5Store:
    """
    HierarchicalStore backed by an HDF5 file.

    Groups opened through :meth:`open_group` are counted in
    :attr:`open_handles` until released with :meth:`close_group`; use
    :meth:`group` to get a handle that is released on every exit path.

    Example:
        with H5Store("session.nwb", mode="r") as store:
            with store.group("/acquisition/timeseries") as acquisition:
                names = list(acquisition)
    """

    def __init__(self, path: Union[str, Path], mode: str = "r"):
        """
        Open the container.

        Args:
            path: HDF5 file path
            mode: h5py file mode ("r", "r+", "w", "w-", "a")
        """
        self.path = Path(path)
        self.mode = mode
        self._file = h5py.File(self.path, mode)
        self.open_handles = 0
        logger.debug(f"Opened {self.path} in mode {mode!r}")

    def __enter__(self) -> H5Store:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"H5Store({str(self.path)!r}, mode={self.mode!r})"

    @property
    def file(self) -> h5py.File:
        return self._file

    def close(self) -> None:
        """Close the container if it is still open."""
        if self._file.id.valid:
            self._file.close()
            logger.debug(f"Closed {self.path}")

    # -------------------------------------------------------------------------
    # Groups
    # -------------------------------------------------------------------------

    def open_group(self, path: str) -> h5py.Group:
        """
        Open an existing group.

        Raises:
            MissingGroupError: If there is no group at ``path``
        """
        obj = self._file.get(path)
        if not isinstance(obj, h5py.Group):
            raise MissingGroupError(f"Group {path} does not exist")
        self.open_handles += 1
        return obj

    def close_group(self, handle: h5py.Group) -> None:
        """Release a handle obtained from :meth:`open_group`."""
        self.open_handles -= 1

    @contextmanager
    def group(self, path: str) -> Iterator[h5py.Group]:
        """Open a group for the duration of a ``with`` block."""
        handle = self.open_group(path)
        try:
            yield handle
        finally:
            self.close_group(handle)

    def group_exists(self, path: str) -> bool:
        return isinstance(self._file.get(path), h5py.Group)

    def create_group(self, path: str) -> None:
        """Create a group and any missing parents; existing groups are kept."""
        self._file.require_group(path)

    def list_group_names(self, path: str) -> list[str]:
        """Names of the child groups of ``path``, in HDF5 iteration order."""
        with self.group(path) as handle:
            return [name for name, obj in handle.items() if isinstance(obj, h5py.Group)]

    def list_group_member_names(self, path: str) -> list[str]:
        """Names of all children (groups and datasets) of ``path``."""
        with self.group(path) as handle:
            return list(handle.keys())

    # -------------------------------------------------------------------------
    # Datasets
    # -------------------------------------------------------------------------

    def _dataset(self, path: str) -> Optional[h5py.Dataset]:
        obj = self._file.get(path)
        return obj if isinstance(obj, h5py.Dataset) else None

    def dataset_exists(self, path: str) -> bool:
        return self._dataset(path) is not None

    def load_text_dataset(self, path: str) -> Optional[list[str]]:
        """
        Load a text dataset as a flat list of rows.

        Returns None if the dataset is missing or not a string dataset.
        """
        dataset = self._dataset(path)
        if dataset is None or h5py.check_string_dtype(dataset.dtype) is None:
            return None

        try:
            value = dataset.asstr()[()]
        except UnicodeDecodeError as e:
            logger.debug(f"{path} is not UTF-8 text: {e}")
            return None
        if isinstance(value, str):
            return [value]
        return [str(item) for item in np.asarray(value).ravel()]

    def load_numeric_dataset(self, path: str) -> Optional[list[float]]:
        """
        Load a numeric dataset as a flat list of floats.

        Returns None if the dataset is missing or not numeric.
        """
        dataset = self._dataset(path)
        if dataset is None or dataset.dtype.kind not in "iuf":
            return None
        return np.atleast_1d(dataset[()]).astype(float).ravel().tolist()

    def _prepare_dataset_path(self, path: str) -> None:
        if path in self._file:
            del self._file[path]
        parent = posixpath.dirname(path)
        if parent:
            self._file.require_group(parent)

    def write_text_dataset(
        self, path: str, value: Union[str, Sequence[str]], chunked: bool = False
    ) -> None:
        """
        Write a text dataset, replacing any existing object at ``path``.

        Args:
            path: Dataset path
            value: Single string or sequence of strings (one row each)
            chunked: Create a chunked, extendable 1-D dataset
        """
        self._prepare_dataset_path(path)

        if chunked:
            rows = [value] if isinstance(value, str) else list(value)
            data = np.array(rows, dtype=_text_dtype)
            self._file.create_dataset(
                path, data=data, dtype=_text_dtype, maxshape=(None,), chunks=True
            )
        elif isinstance(value, str):
            self._file.create_dataset(path, data=value, dtype=_text_dtype)
        else:
            data = np.array(list(value), dtype=_text_dtype)
            self._file.create_dataset(path, data=data, dtype=_text_dtype)

        logger.debug(f"Wrote text dataset {path}")

    def write_numeric_dataset(self, path: str, values: Any) -> None:
        """Write a numeric scalar or array dataset."""
        self._prepare_dataset_path(path)
        self._file.create_dataset(path, data=np.asarray(values))
        logger.debug(f"Wrote numeric dataset {path}")

    # -------------------------------------------------------------------------
    # Attributes
    # -------------------------------------------------------------------------

    def load_text_attribute(self, path: str, name: str) -> Optional[list[str]]:
        """
        Load a text attribute as a list of strings.

        Returns None if the object or attribute is missing, or if the
        attribute is not UTF-8 text.
        """
        obj = self._file.get(path)
        if obj is None or name not in obj.attrs:
            return None
        try:
            value = obj.attrs[name]
        except UnicodeDecodeError as e:
            logger.debug(f"{path}@{name} is not UTF-8 text: {e}")
            return None
        return _as_text_list(value)

    def load_numeric_attribute(self, path: str, name: str) -> Optional[list[float]]:
        """Load a numeric attribute as a list of floats, None if absent."""
        obj = self._file.get(path)
        if obj is None or name not in obj.attrs:
            return None

        value = np.asarray(obj.attrs[name])
        if value.dtype.kind not in "iuf":
            return None
        return np.atleast_1d(value).astype(float).ravel().tolist()

    def write_attribute(self, path: str, name: str, value: Any) -> None:
        """
        Write an attribute on the object at ``path``.

        Strings and sequences of strings are stored as variable-length text.
        """
        obj = self._file.get(path)
        if obj is None:
            raise MissingGroupError(f"No object at {path}")

        if isinstance(value, str):
            obj.attrs.create(name, value, dtype=_text_dtype)
        elif isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
            obj.attrs.create(name, np.array(value, dtype=_text_dtype), dtype=_text_dtype)
        else:
            obj.attrs[name] = value
