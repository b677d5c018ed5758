EXTRACT_PROMPT = """You are a resume parser.
Analyze the resume and return strict JSON only, no other text, with exactly this shape:
{{
  "personalInfo": {{"name": "", "email": "", "phone": "", "location": ""}},
  "education": [{{"degree": "", "institution": "", "year": "", "gpa": ""}}],
  "experience": [{{"title": "", "company": "", "duration": "", "responsibilities": []}}],
  "projects": [{{"name": "", "description": "", "technologies": []}}],
  "skills": [],
  "certifications": []
}}

- Normalize skills to short lowercase tokens.
- If a value is unknown, use an empty string or empty list.

RESUME:
{doc}
"""

IMAGE_DOC_PLACEHOLDER = "(the resume is provided as the attached image)"

MATCH_PROMPT = """You are a recruiter assistant. Compare the job description with the resume
and score the match between 0 and 100.
Return JSON: {{"score": <0..100>, "explanation": "<1-2 sentences>"}}

JOB DESCRIPTION:
{job_description}

RESUME:
Name: {name}
Skills: {skills}
Experience:
{experience}
"""
