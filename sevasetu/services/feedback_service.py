"""
Feedback Aggregator - community up/down votes on completed work.
"""

from typing import List, Union
import logging

from sevasetu.core.exceptions import VotingNotAllowed
from sevasetu.models.complaint import Complaint, CommunityVotes, ComplaintStatus, VoteDirection
from sevasetu.services.complaint_store import ComplaintStore

logger = logging.getLogger(__name__)


class FeedbackAggregator:
    """
    Counts anonymous votes. No voter de-duplication; counters only grow.
    """

    ELIGIBLE_STATUSES = (ComplaintStatus.VERIFIED, ComplaintStatus.CLOSED)

    def __init__(self, store: ComplaintStore):
        self.store = store

    def vote(self, complaint_id: str, direction: Union[VoteDirection, str]) -> CommunityVotes:
        """
        Add one vote to a completed complaint.

        Args:
            complaint_id: Complaint to vote on
            direction: Up or Down

        Returns:
            Updated vote counters

        Raises:
            NotFound: Unknown complaint
            VotingNotAllowed: Complaint is not Verified or Closed
        """
        direction = VoteDirection(direction)

        def _increment(complaint: Complaint):
            if complaint.status not in self.ELIGIBLE_STATUSES:
                raise VotingNotAllowed(
                    f"Votes are only accepted on completed work; {complaint_id} is '{complaint.status.value}'"
                )
            votes = complaint.community_votes
            if direction == VoteDirection.UP:
                votes = CommunityVotes(up=votes.up + 1, down=votes.down)
            else:
                votes = CommunityVotes(up=votes.up, down=votes.down + 1)
            return {"community_votes": votes}

        updated = self.store.transact(complaint_id, _increment)
        logger.info(f"Vote {direction.value} on {complaint_id}: {updated.community_votes.up}↑ {updated.community_votes.down}↓")
        return updated.community_votes

    def get_votes(self, complaint_id: str) -> CommunityVotes:
        return self.store.get(complaint_id).community_votes

    def completed_work(self) -> List[Complaint]:
        """Complaints the public can vote on."""
        completed = []
        for status in self.ELIGIBLE_STATUSES:
            completed.extend(self.store.list(status=status.value))
        return completed
