"""
View state machine: Overview ⇄ Detail(node_id).

    Overview --select(downstream node, value > 0)--> Detail(node_id)
    Detail   --back-->                                Overview
    *        --filter_changed-->                      Overview

Every transition returns a new ViewState; rejected selections return the
current state unchanged.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..models import GraphModel
from .graph_builder import aggregate_id_from_node

logger = logging.getLogger(__name__)


class ViewMode(str, Enum):
    OVERVIEW = "overview"
    DETAIL = "detail"


@dataclass(frozen=True)
class ViewState:
    mode: ViewMode = ViewMode.OVERVIEW
    node_id: Optional[str] = None

    @property
    def is_detail(self) -> bool:
        return self.mode is ViewMode.DETAIL

    def select(self, graph: GraphModel, node_id: str) -> "ViewState":
        """Enter the drill-down of a downstream node shown on ``graph``."""
        if self.is_detail:
            logger.debug(f"Selection of {node_id!r} ignored while viewing {self.node_id!r}")
            return self
        node = graph.node(node_id)
        if node is None or node.tier != "downstream" or node.value <= 0:
            logger.debug(f"Selection of {node_id!r} rejected: not a drillable downstream node")
            return self
        if aggregate_id_from_node(node_id) is None:
            logger.debug(f"Selection of overflow node {node_id!r} rejected")
            return self
        logger.info(f"Drill-down into {node_id!r}")
        return ViewState(mode=ViewMode.DETAIL, node_id=node_id)

    def back(self) -> "ViewState":
        return OVERVIEW

    def filter_changed(self) -> "ViewState":
        if self.is_detail:
            logger.info(f"Filter changed, leaving drill-down of {self.node_id!r}")
        return OVERVIEW

    def to_dict(self) -> dict:
        return {"mode": self.mode.value, "node_id": self.node_id}


OVERVIEW = ViewState()
