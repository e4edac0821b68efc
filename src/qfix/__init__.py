"""qfix — tailor a resume to a job description as a one-page PDF."""
