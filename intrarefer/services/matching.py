"""Skill-based match scoring between referrals and job seekers"""

from typing import List, Optional, Sequence

from intrarefer.utils.helpers import round_half_up

def matched_skills(
    referral_skills: Optional[Sequence[str]],
    candidate_skills: Optional[Sequence[str]]
) -> List[str]:
    """
    Referral skills covered by the candidate

    A skill matches when either string contains the other, ignoring case.
    """
    if not referral_skills or not candidate_skills:
        return []

    candidate = [skill.lower() for skill in candidate_skills]
    return [
        skill for skill in referral_skills
        if any(skill.lower() in other or other in skill.lower() for other in candidate)
    ]

def calculate_match_score(
    referral_skills: Optional[Sequence[str]],
    candidate_skills: Optional[Sequence[str]]
) -> int:
    """Percentage (0-100) of referral skills the candidate matches"""
    if not referral_skills or not candidate_skills:
        return 0
    matches = matched_skills(referral_skills, candidate_skills)
    return round_half_up(100 * len(matches) / len(referral_skills))
