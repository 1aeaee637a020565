from django.db import migrations, models
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='PendingRegistration',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('phone', models.CharField(max_length=20, unique=True)),
                ('identity_key', models.CharField(help_text='Claimed Ed25519 identity public key, base64 (32 bytes)', max_length=64)),
                ('code', models.CharField(max_length=6)),
                ('attempts', models.PositiveSmallIntegerField(default=0)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('expires_at', models.DateTimeField(db_index=True)),
            ],
            options={
                'db_table': 'pending_registrations',
            },
        ),
        migrations.CreateModel(
            name='VerifiedIdentity',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('phone', models.CharField(max_length=20, unique=True)),
                ('identity_key', models.CharField(help_text='Ed25519 identity public key, copied from the pending registration', max_length=64)),
                ('signed_prekey', models.CharField(help_text='Signed prekey public, base64 (32 bytes)', max_length=64)),
                ('signature', models.CharField(help_text='Ed25519 signature over the signed prekey, base64', max_length=100)),
                ('one_time_keys', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                'db_table': 'verified_identities',
                'verbose_name_plural': 'verified identities',
            },
        ),
    ]
