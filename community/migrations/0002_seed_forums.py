from django.db import migrations


FORUMS = [
    {
        'slug': 'sea-personnel',
        'title': 'Topics related to Sea Personnel',
        'description': (
            'Questions from sea personnel such as Master, C/O, C/E, 2/E, 2/O, '
            '3/E, ETO and other seafarers.'
        ),
    },
    {
        'slug': 'shore-personnel',
        'title': 'Topics related to Shore Personnel',
        'description': (
            'Questions from shore-based personnel such as Superintendents, CSO, '
            'DPA and other shore-based professionals.'
        ),
    },
]


def create_forums(apps, schema_editor):
    Forum = apps.get_model('community', 'Forum')
    for row in FORUMS:
        Forum.objects.update_or_create(
            slug=row['slug'],
            defaults={'title': row['title'], 'description': row['description']},
        )


def remove_forums(apps, schema_editor):
    Forum = apps.get_model('community', 'Forum')
    Forum.objects.filter(slug__in=[row['slug'] for row in FORUMS]).delete()


class Migration(migrations.Migration):

    dependencies = [
        ('community', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(create_forums, remove_forums),
    ]
