CANDIDATE_SYSTEM_PROMPT = (
    "You are a professional CV analyzer. Extract comprehensive information "
    "from CVs and respond ONLY with valid JSON."
)

POSITION_SYSTEM_PROMPT = (
    "You are a professional job analyzer. Extract comprehensive information "
    "from job descriptions and respond ONLY with valid JSON."
)

CANDIDATE_EXTRACT_PROMPT = """Analyze this CV section and extract comprehensive information in JSON format{chunk_context}:

CV Content:
{doc}

Required JSON format:
{{
  "name": "full name",
  "email": "email address",
  "phone": "phone number",
  "location": "location",
  "summary": "professional summary",
  "experience_years": <number>,
  "technologies": ["tech1", "tech2"],
  "job_history": [{{"company": "company name", "position": "job title", "duration": "time period", "description": "job description"}}],
  "education": [{{"institution": "school name", "degree": "degree type", "year": "graduation year"}}]
}}

- If a value is unknown, use null or an empty list.
- Respond with JSON only.
"""

POSITION_EXTRACT_PROMPT = """Analyze this job description section and extract comprehensive information in JSON format{chunk_context}:

Job Content:
{doc}

Required JSON format:
{{
  "title": "job title",
  "company": "company name",
  "location": "location",
  "salary": "salary range",
  "experience_required": <number>,
  "required_skills": ["skill1", "skill2"],
  "description": "detailed job description",
  "requirements": ["requirement1", "requirement2"]
}}

- If a value is unknown, use null or an empty list.
- Respond with JSON only.
"""

CHUNK_CONTEXT = " (Analyzing part {part} of {total})"

MATCH_SYSTEM_PROMPT = (
    "You are a recruiter assistant. You compare profiles and respond ONLY with valid JSON."
)

MATCH_PROMPT = """Score how well the SUBJECT matches each entry in CANDIDATES on a 0-100 scale.
The subject is a {subject_label}; the candidates are {candidate_label}s.
Reason over skill overlap, experience-level fit and stated requirements.

Return JSON:
{{"matches": [{{"candidate_id": "<id from CANDIDATES>", "score": <0..100>, "matched_attributes": ["..."], "missing_attributes": ["..."], "experience_match": <true|false>, "rationale": "<1-2 sentences>"}}]}}

Include one entry per candidate.

SUBJECT:
{subject}

CANDIDATES:
{candidates}
"""
