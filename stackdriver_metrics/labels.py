"""Label key sanitization and default label handling"""
import os
import socket
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from google.api import label_pb2 as ga_label

LABEL_KEY_SIZE_LIMIT = 100

OPENCENSUS_TASK_KEY = "opencensus_task"
OPENCENSUS_TASK_DESCRIPTION = "Opencensus task identifier"


@dataclass(frozen=True)
class DefaultLabel:
    """Value and description of a label attached to every exported series"""
    value: str
    description: str = ""


def sanitize(key: str) -> str:
    """Rewrite a label key into the backend's allowed character set.

    Descriptor labels and time series labels both go through here so that
    they always agree.
    """
    if not key:
        return key
    key = key[:LABEL_KEY_SIZE_LIMIT]
    key = "".join(ch if ch.isalpha() or ch.isdigit() else "_" for ch in key)
    if key[0].isdigit():
        key = "key_" + key
    if key[0] == "_":
        key = "key" + key
    return key


def default_labels_from_node(node=None) -> Dict[str, DefaultLabel]:
    """Build the opencensus_task label for the process described by ``node``.

    Without a node the current process is described. A new dict is returned
    on every call since callers forward metrics from different processes.
    """
    if node is None:
        language, pid, host_name = "python", os.getpid(), socket.gethostname()
    else:
        language = node.library_info.language.name.lower()
        pid = node.identifier.pid
        host_name = node.identifier.host_name
    return {
        OPENCENSUS_TASK_KEY: DefaultLabel(
            value=f"{language}-{pid}@{host_name}",
            description=OPENCENSUS_TASK_DESCRIPTION,
        )
    }


def labels_per_time_series(defaults: Dict[str, DefaultLabel], label_keys: Sequence,
                           label_values: Sequence) -> Optional[Dict[str, str]]:
    """Merge default labels with a series' own labels.

    Returns None when the series carries a different number of values than
    the metric has keys; the caller decides how to report it.
    """
    if len(label_keys) != len(label_values):
        return None

    labels = {sanitize(key): label.value for key, label in defaults.items()}
    for label_key, label_value in zip(label_keys, label_values):
        labels[sanitize(label_key.key)] = label_value.value
    return labels


def label_descriptors(defaults: Dict[str, DefaultLabel], label_keys: Sequence) -> List[ga_label.LabelDescriptor]:
    """Label descriptors for a metric: defaults first, then the metric's keys"""
    descriptors = [
        ga_label.LabelDescriptor(
            key=sanitize(key),
            description=label.description,
            value_type=ga_label.LabelDescriptor.STRING,
        )
        for key, label in defaults.items()
    ]
    for label_key in label_keys:
        descriptors.append(ga_label.LabelDescriptor(
            key=sanitize(label_key.key),
            description=label_key.description,
            value_type=ga_label.LabelDescriptor.STRING,
        ))
    return descriptors
