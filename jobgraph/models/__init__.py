# __init__.py
from jobgraph.models.company import Company, CompanyUser
from jobgraph.models.job_match import JobMatch
from jobgraph.models.job_skill import JobSkillRequirement
from jobgraph.models.jobs import Job
from jobgraph.models.profile import CandidateProfile, Education, WorkExperience
from jobgraph.models.skill_score import CandidateSkillScore
from jobgraph.models.skills import Skill
from jobgraph.models.user import User

__all__ = [
	"CandidateProfile",
	"CandidateSkillScore",
	"Company",
	"CompanyUser",
	"Education",
	"Job",
	"JobMatch",
	"JobSkillRequirement",
	"Skill",
	"User",
	"WorkExperience",
]
