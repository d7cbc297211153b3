import io

import pandas as pd
from fpdf import FPDF

from time_grid import SCHOOL_DAY_NAMES


def timetable_frame(rows):
    """Period x day grid of 'Course (Teacher)' cells from joined timetable rows."""
    if not rows:
        return pd.DataFrame(columns=SCHOOL_DAY_NAMES)

    df = pd.DataFrame(rows)
    df['entry'] = df['course_name'].fillna('') + ' (' + df['teacher_name'].fillna('') + ')'
    df['slot'] = 'P' + df['period'].astype(str) + ' ' + df['start_time'].fillna('') + '-' + df['end_time'].fillna('')
    grid = df.pivot_table(index=['period', 'slot'], columns='day', values='entry',
                          aggfunc=' / '.join, fill_value='')
    grid = grid.reindex(columns=SCHOOL_DAY_NAMES, fill_value='')
    grid = grid.sort_index(level='period').droplevel('period')
    grid.index.name = 'Period'
    grid.columns.name = None
    return grid


def to_csv_text(rows):
    return timetable_frame(rows).to_csv()


def to_excel_bytes(rows, sheet_name='Timetable'):
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        safe_name = ''.join('_' if ch in '[]:*?/\\' else ch for ch in sheet_name)[:31] or 'Timetable'
        timetable_frame(rows).to_excel(writer, sheet_name=safe_name)
    return buffer.getvalue()


def _latin1(text):
    return str(text).encode('latin-1', 'replace').decode('latin-1')


def to_pdf_bytes(rows, title='Timetable'):
    grid = timetable_frame(rows)
    pdf = FPDF(orientation='L', unit='mm', format='A4')
    pdf.add_page()
    pdf.set_font('Helvetica', 'B', 14)
    pdf.cell(0, 10, _latin1(title), align='C')
    pdf.ln(12)

    columns = list(grid.columns)
    first_width = 40
    width = (pdf.w - pdf.l_margin - pdf.r_margin - first_width) / max(len(columns), 1)

    pdf.set_font('Helvetica', 'B', 9)
    pdf.cell(first_width, 8, 'Period', border=1, align='C')
    for day in columns:
        pdf.cell(width, 8, _latin1(day.title()), border=1, align='C')
    pdf.ln(8)

    pdf.set_font('Helvetica', '', 7)
    for slot, row in grid.iterrows():
        pdf.cell(first_width, 8, _latin1(slot), border=1)
        for day in columns:
            pdf.cell(width, 8, _latin1(row[day])[:45], border=1)
        pdf.ln(8)
    return bytes(pdf.output())
