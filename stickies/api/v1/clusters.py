"""
Clusters API Router

Runs k-means clustering over indexed notes and lists the latest result.
"""

import logging

from fastapi import APIRouter, Depends

from stickies.api.v1.deps import get_clustering_service
from stickies.schemas.clusters import ClusterRead, ClusterRequest
from stickies.services.clustering import ClusteringService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/", response_model=list[ClusterRead])
async def run_clustering(
    request: ClusterRequest,
    service: ClusteringService = Depends(get_clustering_service),
):
    """
    Recompute clusters over every indexed note.

    Replaces the previous cluster set. Notes without an embedding are not
    clustered; an empty corpus returns an empty list. Initialization is
    random, so cluster names and membership can differ between runs.
    """
    logger.info("Clustering requested (k=%d)", request.k)
    return await service.cluster_notes(request.k)


@router.get("/", response_model=list[ClusterRead])
async def list_clusters(service: ClusteringService = Depends(get_clustering_service)):
    """Clusters from the latest run."""
    return await service.list_clusters()
