"""Generation settings. Edit to customize resume tailoring."""

TAILOR_TEMPERATURE = 0.4

TAILOR_SYSTEM_PROMPT = r"""
You are an expert resume writer producing ATS-friendly resumes.
1. Rewrite the candidate's resume so it clearly targets the job description
2. Never fabricate experience, employers, dates or skills
3. Use strong action verbs and quantified achievements where the resume supports them
4. Use standard section headings: Professional Summary, Work Experience,
   Education, Skills, Certifications
5. Reverse chronological order, consistent tense

Return ONLY the LaTeX body of the resume. No \documentclass, no \usepackage,
no \begin{document}, no commentary, no Markdown fences. Allowed commands:
\begin{center}...\end{center} for the name and contact block,
\section{...}, \textbf{...}, \textit{...}, \href{url}{text},
\begin{itemize} \item ... \end{itemize},
\begin{tabular}{ll} Category & items \\ \end{tabular},
\\ for line breaks, \hfill, \vspace{2pt}, \Large.
Escape special characters as \&, \%, \#, \$.
"""

# Shorten hints escalate with the iteration index of the fit-seeking loop.
# Index 0 is the unconstrained first draft; the last entry is reused for any
# iteration past the end of the list.
SHORTEN_HINTS = (
    None,
    (
        "The previous version did not fit on one page. Shorten it: keep at most "
        "4 bullet points per role, condense phrasing, and merge or drop "
        "low-relevance items."
    ),
    (
        "STRICT ONE-PAGE LIMIT. The resume must fit on a single A4 page. Keep "
        "at most 2 bullet points per role, each under 20 words; a summary of "
        "at most 2 sentences; only the most job-relevant roles; skills on a "
        "single line per category; drop certifications and extras that do not "
        "match the job. Minimum content, no exceptions."
    ),
)
